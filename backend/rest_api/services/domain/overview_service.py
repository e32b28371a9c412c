"""
Overview Service.

Builds the dashboard: one color verdict per table of a tenant. Counters for
every active session are computed with a fixed number of aggregate queries
(no per-table queries), then classified in a single pass.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from shared.config.constants import ItemStatus, OrderStatus, PaymentStatus, SessionStatus
from shared.infrastructure.telemetry import traced
from shared.utils.exceptions import NotFoundError
from rest_api.models import DiningSession, Order, OrderItem, Table, Tenant
from rest_api.services.domain.status_classifier import (
    NO_SESSION,
    SessionCounters,
    check_policy,
    classify,
)


@dataclass(frozen=True)
class TableVerdict:
    table_id: int
    table_label: str
    session_id: int | None
    color: str
    reason: str
    counters: SessionCounters
    first_ready_at: datetime | None = None


@dataclass(frozen=True)
class _SessionStats:
    counters: SessionCounters
    first_ready_at: datetime | None


def label_sort_key(label: str) -> tuple:
    """Numeric labels first in numeric order, then the rest alphabetically."""
    if label.isdigit():
        return (0, int(label), label)
    return (1, 0, label)


def _earliest(*values: datetime | None) -> datetime | None:
    present = [v for v in values if v is not None]
    return min(present) if present else None


class OverviewService:
    def __init__(self, db: Session):
        self._db = db

    def overview(self, tenant_id: int, policy: str) -> list[TableVerdict]:
        check_policy(policy)
        tenant = self._db.get(Tenant, tenant_id)
        if tenant is None or not tenant.is_active:
            raise NotFoundError("Tenant", tenant_id)

        with traced("overview.build", tenant_id=tenant_id, policy=policy):
            # Only a pointer to a still-active session counts as occupied
            rows = self._db.execute(
                select(Table.id, Table.label, DiningSession.id)
                .outerjoin(
                    DiningSession,
                    and_(
                        DiningSession.id == Table.current_session_id,
                        DiningSession.status == SessionStatus.ACTIVE,
                    ),
                )
                .where(Table.tenant_id == tenant_id, Table.is_active.is_(True))
            ).all()

            stats = self.session_stats([sid for _, _, sid in rows if sid is not None])

            verdicts = []
            for table_id, label, session_id in rows:
                entry = stats.get(session_id) if session_id is not None else None
                counters = entry.counters if entry else NO_SESSION
                verdict = classify(counters, policy)
                verdicts.append(
                    TableVerdict(
                        table_id=table_id,
                        table_label=label,
                        session_id=session_id,
                        color=verdict.color,
                        reason=verdict.reason,
                        counters=counters,
                        first_ready_at=entry.first_ready_at if entry else None,
                    )
                )

        verdicts.sort(key=lambda v: label_sort_key(v.table_label))
        return verdicts

    def counters_for(self, session: DiningSession) -> SessionCounters:
        """Counters of one session, as the overview would compute them."""
        if session.status != SessionStatus.ACTIVE:
            return NO_SESSION
        return self.session_stats([session.id])[session.id].counters

    def session_stats(self, session_ids: list[int]) -> dict[int, _SessionStats]:
        """Counters for the given active sessions in two aggregate queries."""
        if not session_ids:
            return {}

        is_ready = Order.status.in_(OrderStatus.READY_STATES)
        order_rows = self._db.execute(
            select(
                Order.dining_session_id,
                func.count(Order.id),
                func.sum(case((Order.payment_status != PaymentStatus.PAID, 1), else_=0)),
                func.sum(case((Order.payment_status == PaymentStatus.PAID, 1), else_=0)),
                func.sum(case((is_ready, 1), else_=0)),
                func.min(
                    case(
                        (is_ready, func.coalesce(Order.actual_ready_at, Order.estimated_ready_at)),
                        else_=None,
                    )
                ),
            )
            .where(Order.dining_session_id.in_(session_ids))
            .group_by(Order.dining_session_id)
        ).all()

        item_rows = self._db.execute(
            select(
                Order.dining_session_id,
                func.count(OrderItem.id),
                func.min(func.coalesce(OrderItem.updated_at, OrderItem.created_at)),
            )
            .join(Order, OrderItem.order_id == Order.id)
            .where(
                Order.dining_session_id.in_(session_ids),
                OrderItem.status == ItemStatus.COMPLETED,
            )
            .group_by(Order.dining_session_id)
        ).all()

        orders_by_session = {row[0]: row for row in order_rows}
        items_by_session = {row[0]: row for row in item_rows}

        result: dict[int, _SessionStats] = {}
        for session_id in session_ids:
            _, count, unpaid, paid, ready, order_ready_at = orders_by_session.get(
                session_id, (session_id, 0, 0, 0, 0, None)
            )
            _, completed_items, item_ready_at = items_by_session.get(
                session_id, (session_id, 0, None)
            )
            counters = SessionCounters(
                active=True,
                orders_count=count or 0,
                unpaid_count=unpaid or 0,
                paid_count=paid or 0,
                any_ready=bool(ready) or bool(completed_items),
            )
            result[session_id] = _SessionStats(
                counters=counters,
                first_ready_at=_earliest(order_ready_at, item_ready_at),
            )
        return result
