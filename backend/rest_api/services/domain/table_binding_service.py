"""
Table Binding Service.

Resolves a scan (printed code) or a staff-entered label to a Table row
inside one tenant. Labels are insert-or-fetch: the first scan of an unknown
label creates the table.
"""

import secrets
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.infrastructure.telemetry import trace_event
from shared.utils.exceptions import (
    ConflictError,
    NotFoundError,
    TableNotFoundError,
    ValidationError,
)
from rest_api.models import Table, Tenant, utcnow

logger = get_logger(__name__)


def new_code_id() -> str:
    """Opaque, URL-safe identifier printed in the QR code."""
    return secrets.token_urlsafe(12)


def normalize_label(label: str) -> str:
    normalized = label.strip()
    if not normalized:
        raise ValidationError("table_label must not be blank")
    if len(normalized) > Limits.MAX_TABLE_LABEL_LENGTH:
        raise ValidationError(
            f"table_label must be at most {Limits.MAX_TABLE_LABEL_LENGTH} characters",
            length=len(normalized),
        )
    return normalized


@dataclass(frozen=True)
class TableSelector:
    """Exactly one of code_id or label."""

    code_id: str | None = None
    label: str | None = None

    def __post_init__(self) -> None:
        has_code = bool(self.code_id and self.code_id.strip())
        has_label = bool(self.label and self.label.strip())
        if has_code == has_label:
            raise ValidationError("Provide exactly one of code_id or table_label")

    @classmethod
    def from_request(cls, code_id: str | None, label: str | None) -> "TableSelector | None":
        """Selector from optional request fields; None when neither is given."""
        code_id = (code_id or "").strip() or None
        label = (label or "").strip() or None
        if code_id is None and label is None:
            return None
        return cls(code_id=code_id, label=label)


class TableBindingService:
    def __init__(self, db: Session):
        self._db = db

    def get_tenant(self, tenant_id: int) -> Tenant:
        tenant = self._db.get(Tenant, tenant_id)
        if tenant is None or not tenant.is_active:
            raise NotFoundError("Tenant", tenant_id)
        return tenant

    def resolve(self, tenant_id: int, selector: TableSelector) -> Table:
        """
        Table for a scan or label.

        Raises:
            NotFoundError: unknown or inactive tenant, unknown code
            ConflictError: a concurrent creator holds the label but the row
                still cannot be read back
        """
        self.get_tenant(tenant_id)
        code_id = (selector.code_id or "").strip()
        if code_id:
            return self.find_by_code(tenant_id, code_id)
        return self._get_or_create_by_label(tenant_id, normalize_label(selector.label or ""))

    def find_by_code(self, tenant_id: int, code_id: str) -> Table:
        table = self._db.scalar(
            select(Table).where(
                Table.tenant_id == tenant_id,
                Table.code_id == code_id,
            )
        )
        if table is None or not table.is_active:
            raise TableNotFoundError(code_id, tenant_id=tenant_id)
        return table

    def find_by_label(self, tenant_id: int, label: str) -> Table:
        """Existing table by label; never creates."""
        table = self._select_by_label(tenant_id, normalize_label(label))
        if table is None or not table.is_active:
            raise TableNotFoundError(label, tenant_id=tenant_id)
        return table

    def _select_by_label(self, tenant_id: int, label: str) -> Table | None:
        return self._db.scalar(
            select(Table).where(
                Table.tenant_id == tenant_id,
                Table.label == label,
            )
        )

    def _get_or_create_by_label(self, tenant_id: int, label: str) -> Table:
        table = self._select_by_label(tenant_id, label)
        if table is None:
            table = self._try_insert(tenant_id, label)
        if table is None:
            # Lost the race to a concurrent creator: its row is committed now
            table = self._select_by_label(tenant_id, label)
            if table is None:
                raise ConflictError(
                    f"Table '{label}' could not be created or read",
                    tenant_id=tenant_id,
                    label=label,
                )
        if not table.is_active:
            raise TableNotFoundError(label, tenant_id=tenant_id)
        return table

    def _try_insert(self, tenant_id: int, label: str) -> Table | None:
        table = Table(tenant_id=tenant_id, label=label, code_id=new_code_id())
        try:
            with self._db.begin_nested():
                self._db.add(table)
        except IntegrityError:
            trace_event("table.insert_raced", tenant_id=tenant_id, label=label)
            return None
        logger.info("Table created", table_id=table.id, tenant_id=tenant_id, label=label)
        trace_event("table.created", table_id=table.id, label=label)
        return table

    def touch_last_seen(self, table: Table) -> None:
        """Stamp the scan time. Best effort: failures are logged, never raised."""
        try:
            with self._db.begin_nested():
                table.last_scan_at = utcnow()
        except SQLAlchemyError as exc:
            logger.warning(
                "Could not stamp table scan time",
                table_id=table.id,
                error=str(exc),
            )
