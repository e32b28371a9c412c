"""
Menu lookup: price and availability of menu items, read only.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import MenuItem


class MenuLookup:
    """Batch reader over the tenant's menu."""

    def __init__(self, db: Session):
        self._db = db

    def get_many(self, tenant_id: int, menu_item_ids: Iterable[int]) -> dict[int, MenuItem]:
        """
        Load the requested items in one query.
        Ids from other tenants or unknown ids are simply absent from the result.
        """
        ids = {i for i in menu_item_ids if i is not None}
        if not ids:
            return {}
        rows = self._db.scalars(
            select(MenuItem).where(
                MenuItem.tenant_id == tenant_id,
                MenuItem.id.in_(ids),
            )
        ).all()
        return {item.id: item for item in rows}
