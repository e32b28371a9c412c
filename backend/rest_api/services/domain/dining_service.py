"""
Dining Service.

Application service behind the HTTP surface: each public method is one
external operation, run as one tenant-scoped transaction composed from the
binding, session, order and overview services.
"""

from dataclasses import dataclass, field
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.config.constants import DisplayPolicy, Limits, SessionStatus
from shared.config.logging import scan_logger, orders_logger
from shared.config.settings import settings
from shared.infrastructure.db import tenant_transaction
from shared.infrastructure.telemetry import trace_event, traced
from shared.utils.exceptions import ServiceUnavailableError, ValidationError
from rest_api.models import DiningSession, Order, OrderItem, Table
from rest_api.services.domain.order_service import (
    ItemRequest,
    ItemWarning,
    MarkPaidResult,
    OrderOptions,
    OrderService,
)
from rest_api.services.domain.overview_service import OverviewService, TableVerdict
from rest_api.services.domain.session_service import CloseResult, SessionHandle, SessionService
from rest_api.services.domain.status_classifier import predict_colors
from rest_api.services.domain.table_binding_service import TableBindingService, TableSelector
from rest_api.services.payments import PaymentConfirmationClient


@dataclass(frozen=True)
class BindingResult:
    table: Table
    handle: SessionHandle


@dataclass(frozen=True)
class ScanResult:
    table: Table
    handle: SessionHandle
    colors: dict[str, str]
    redirect: str


@dataclass
class CheckoutResult:
    order: Order | None
    session: DiningSession | None
    item_warnings: list[ItemWarning] = field(default_factory=list)
    colors: dict[str, str] | None = None
    mock: bool = False


@dataclass(frozen=True)
class TableDetail:
    table: Table
    session: DiningSession | None
    orders: list[Order]


def build_frontend_redirect(table: Table, session: DiningSession) -> str:
    """URL the diner's browser is sent to after a scan."""
    query = urlencode({
        "table": table.label,
        "sessionId": session.id,
        "qr": table.code_id,
        "businessId": table.tenant_id,
    })
    return f"{settings.frontend_origin.rstrip('/')}/?{query}"


class DiningService:
    def __init__(self, db: Session, payments: PaymentConfirmationClient | None = None):
        self._db = db
        self._tables = TableBindingService(db)
        self._sessions = SessionService(db)
        self._orders = OrderService(db, payments)
        self._overview = OverviewService(db)

    # =========================================================================
    # Scan and sessions
    # =========================================================================

    def scan(self, tenant_id: int, code_id: str) -> ScanResult:
        """Resolve a QR scan and bind it to the table's live session."""
        with tenant_transaction(self._db, tenant_id):
            with traced("qr.scan", tenant_id=tenant_id, code_id=code_id):
                table = self._tables.resolve(tenant_id, TableSelector(code_id=code_id))
                self._tables.touch_last_seen(table)
                handle = self._sessions.ensure_active_session(table)
                colors = predict_colors(self._overview.counters_for(handle.session))
                trace_event("scan.colors_predicted", table_id=table.id, **colors)
                redirect = build_frontend_redirect(table, handle.session)

        scan_logger.info(
            "QR scan bound",
            table_id=table.id,
            session_id=handle.session.id,
            created=handle.created,
            **colors,
        )
        return ScanResult(table, handle, colors, redirect)

    def ensure_session(self, tenant_id: int, selector: TableSelector) -> BindingResult:
        with tenant_transaction(self._db, tenant_id):
            table = self._tables.resolve(tenant_id, selector)
            handle = self._sessions.ensure_active_session(table)
        return BindingResult(table, handle)

    def start_session(self, tenant_id: int, table_label: str) -> BindingResult:
        return self.ensure_session(tenant_id, TableSelector(label=table_label))

    def close_session(
        self,
        tenant_id: int,
        session_id: int,
        table_label: str | None = None,
        final_status: str = SessionStatus.COMPLETED,
    ) -> CloseResult:
        with tenant_transaction(self._db, tenant_id):
            return self._sessions.close(
                tenant_id,
                session_id,
                table_label=table_label,
                final_status=final_status,
            )

    # =========================================================================
    # Orders
    # =========================================================================

    def place_order(
        self,
        tenant_id: int,
        *,
        selector: TableSelector | None,
        session_id: int | None,
        items: list[ItemRequest],
        options: OrderOptions | None = None,
    ) -> CheckoutResult:
        """
        Place an order on the session given by id (validated, never trusted)
        or on the table's live session.

        With allow_db_mock on, a database outage answers a flagged mock
        result instead of failing; nothing is persisted.
        """
        if selector is None and session_id is None:
            raise ValidationError("table_label, code_id or session_id is required")
        if not items:
            raise ValidationError("items must not be empty")

        try:
            with tenant_transaction(self._db, tenant_id):
                table = self._tables.resolve(tenant_id, selector) if selector else None
                if session_id is not None:
                    session = self._sessions.validate_provided_session(tenant_id, table, session_id)
                else:
                    session = self._sessions.ensure_active_session(table).session
                placed = self._orders.place_order(session, items, options)
                colors = predict_colors(self._overview.counters_for(session))
        except ServiceUnavailableError:
            if not settings.allow_db_mock:
                raise
            orders_logger.warning(
                "Database unavailable, answering mock checkout",
                tenant_id=tenant_id,
                items=len(items),
            )
            return CheckoutResult(order=None, session=None, mock=True)

        return CheckoutResult(
            order=placed.order,
            session=session,
            item_warnings=placed.item_warnings,
            colors=colors,
        )

    def update_order_status(self, tenant_id: int, order_id: int, status: str) -> Order:
        with tenant_transaction(self._db, tenant_id):
            return self._orders.update_order_status(tenant_id, order_id, status)

    def update_item_status(self, tenant_id: int, item_id: int, status: str) -> OrderItem:
        with tenant_transaction(self._db, tenant_id):
            return self._orders.update_item_status(tenant_id, item_id, status)

    def update_payment_status(self, tenant_id: int, order_id: int, status: str) -> Order:
        with tenant_transaction(self._db, tenant_id):
            return self._orders.update_payment_status(tenant_id, order_id, status)

    def mark_paid(self, tenant_id: int, order_id: int, *, local_override: bool = False) -> MarkPaidResult:
        with tenant_transaction(self._db, tenant_id):
            return self._orders.mark_paid(tenant_id, order_id, local_override=local_override)

    # =========================================================================
    # Reads
    # =========================================================================

    def overview(self, tenant_id: int, policy: str = DisplayPolicy.DEFAULT) -> list[TableVerdict]:
        with tenant_transaction(self._db, tenant_id):
            return self._overview.overview(tenant_id, policy)

    def table_detail(self, tenant_id: int, table_label: str) -> TableDetail:
        """Table, its live session (if any) and that session's latest orders."""
        with tenant_transaction(self._db, tenant_id):
            table = self._tables.find_by_label(tenant_id, table_label)
            session = self._sessions.current_session(table)
            orders: list[Order] = []
            if session is not None:
                orders = list(
                    self._db.scalars(
                        select(Order)
                        .where(Order.dining_session_id == session.id)
                        .order_by(Order.placed_at.desc(), Order.id.desc())
                        .limit(Limits.TABLE_DETAIL_ORDERS)
                    ).all()
                )
        return TableDetail(table, session, orders)

    def list_orders(self, tenant_id: int, session_id: int | None = None) -> list[Order]:
        with tenant_transaction(self._db, tenant_id):
            return self._orders.list_orders(tenant_id, session_id)

    def kitchen_queue(self, tenant_id: int, active_only: bool = True) -> list[tuple[Order, str]]:
        with tenant_transaction(self._db, tenant_id):
            return self._orders.kitchen_queue(tenant_id, active_only)
