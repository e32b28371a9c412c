"""
Order Service.

Records orders and their items against a dining session and tracks
preparation and payment status. Orders are append-only: after placement only
status fields change.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import (
    IMMEDIATE_PAYMENT_METHODS,
    ItemStatus,
    Limits,
    OrderStatus,
    PaymentStatus,
)
from shared.config.logging import orders_logger as logger
from shared.config.settings import settings
from shared.infrastructure.telemetry import trace_event, traced
from shared.utils.exceptions import (
    ExternalServiceError,
    InvalidStatusError,
    OrderItemNotFoundError,
    OrderNotFoundError,
    TenantMismatchError,
    ValidationError,
)
from rest_api.models import DiningSession, MenuItem, Order, OrderItem, Table, utcnow
from rest_api.services.catalog import MenuLookup
from rest_api.services.payments import PaymentBackendUnavailable, PaymentConfirmationClient

ConfirmationSource = Literal["local_override", "gateway", "local_fallback"]


@dataclass(frozen=True)
class PaymentIntent:
    """Payment hints sent with a checkout."""

    pay_now: bool = False
    pay_first: bool = False
    method: str | None = None
    status: str | None = None
    amount_cents: int | None = None

    @property
    def is_immediate(self) -> bool:
        """True when any hint says the order is already paid."""
        if self.pay_now or self.pay_first:
            return True
        if (self.method or "").strip().lower() in IMMEDIATE_PAYMENT_METHODS:
            return True
        if (self.status or "").strip().lower() == PaymentStatus.PAID:
            return True
        return (self.amount_cents or 0) > 0


@dataclass(frozen=True)
class ItemRequest:
    menu_item_id: int | None = None
    name: str | None = None
    quantity: int = 1
    unit_price_cents: int | None = None


@dataclass(frozen=True)
class OrderOptions:
    payment: PaymentIntent | None = None
    prep_time_minutes: int | None = None
    # Wins over the computed total when positive
    total_amount_cents: int | None = None


@dataclass(frozen=True)
class ItemWarning:
    index: int
    menu_item_id: int | None
    reason: str


@dataclass
class PlacedOrder:
    order: Order
    item_warnings: list[ItemWarning] = field(default_factory=list)


@dataclass(frozen=True)
class MarkPaidResult:
    order: Order
    confirmation: ConfirmationSource


@dataclass(frozen=True)
class _Line:
    menu_item_id: int | None
    name: str
    quantity: int
    unit_price_cents: int


class OrderService:
    def __init__(self, db: Session, payments: PaymentConfirmationClient | None = None):
        self._db = db
        self._payments = payments

    # =========================================================================
    # Placement
    # =========================================================================

    def place_order(
        self,
        session: DiningSession,
        items: list[ItemRequest],
        options: OrderOptions | None = None,
    ) -> PlacedOrder:
        """
        Record an order on an active session.

        Items that cannot be inserted (bad quantity, unknown or unavailable
        menu item, missing price) are skipped and reported as warnings; the
        order itself still succeeds.

        Raises:
            ValidationError: empty item list, too many items, bad prep time
        """
        options = options or OrderOptions()
        if not items:
            raise ValidationError("items must not be empty", session_id=session.id)
        if len(items) > Limits.MAX_ITEMS_PER_ORDER:
            raise ValidationError(
                f"At most {Limits.MAX_ITEMS_PER_ORDER} items per order",
                session_id=session.id,
                count=len(items),
            )

        prep_minutes = options.prep_time_minutes
        if prep_minutes is None:
            prep_minutes = settings.default_prep_time_minutes
        if not 0 <= prep_minutes <= Limits.MAX_PREP_TIME_MINUTES:
            raise ValidationError(
                f"prep_time_minutes must be between 0 and {Limits.MAX_PREP_TIME_MINUTES}",
                value=prep_minutes,
            )

        paid_now = options.payment is not None and options.payment.is_immediate

        with traced("order.place", session_id=session.id, tenant_id=session.tenant_id):
            menu = MenuLookup(self._db).get_many(
                session.tenant_id, (item.menu_item_id for item in items)
            )
            lines, warnings = self._build_lines(items, menu, session.id)

            placed_at = utcnow()
            order = Order(
                tenant_id=session.tenant_id,
                dining_session_id=session.id,
                status=OrderStatus.PLACED,
                payment_status=PaymentStatus.PAID if paid_now else PaymentStatus.UNPAID,
                prep_time_minutes=prep_minutes,
                placed_at=placed_at,
                estimated_ready_at=placed_at + timedelta(minutes=prep_minutes),
                total_amount_cents=0,
            )
            self._db.add(order)
            self._db.flush()

            for line in lines:
                self._db.add(
                    OrderItem(
                        tenant_id=session.tenant_id,
                        order_id=order.id,
                        menu_item_id=line.menu_item_id,
                        item_name=line.name,
                        quantity=line.quantity,
                        unit_price_cents=line.unit_price_cents,
                        status=ItemStatus.QUEUED,
                    )
                )

            computed_total = sum(line.quantity * line.unit_price_cents for line in lines)
            if options.total_amount_cents is not None and options.total_amount_cents > 0:
                order.total_amount_cents = options.total_amount_cents
            else:
                order.total_amount_cents = computed_total
            self._db.flush()

            if paid_now:
                self.refresh_session_payment(session)

            trace_event(
                "order.placed",
                order_id=order.id,
                items=len(lines),
                skipped=len(warnings),
                paid=paid_now,
            )

        logger.info(
            "Order placed",
            order_id=order.id,
            session_id=session.id,
            total_amount_cents=order.total_amount_cents,
            payment_status=order.payment_status,
            skipped_items=len(warnings),
        )
        self._db.refresh(order, ["items"])
        return PlacedOrder(order, warnings)

    def _build_lines(
        self,
        items: list[ItemRequest],
        menu: dict[int, MenuItem],
        session_id: int,
    ) -> tuple[list[_Line], list[ItemWarning]]:
        lines: list[_Line] = []
        warnings: list[ItemWarning] = []

        for index, item in enumerate(items):
            reason: str | None = None
            name = (item.name or "").strip()
            price = item.unit_price_cents

            if not 1 <= item.quantity <= Limits.MAX_ITEM_QUANTITY:
                reason = f"quantity must be between 1 and {Limits.MAX_ITEM_QUANTITY}"
            elif item.menu_item_id is not None:
                menu_item = menu.get(item.menu_item_id)
                if menu_item is None:
                    reason = "menu item not found"
                elif not menu_item.is_available:
                    reason = "menu item unavailable"
                else:
                    name = name or menu_item.name
                    if price is None:
                        price = menu_item.price_cents
            elif not name or price is None:
                reason = "name and unit_price_cents required without menu_item_id"

            if reason is None and price is not None and price < 0:
                reason = "unit_price_cents must not be negative"

            if reason is not None:
                warnings.append(ItemWarning(index, item.menu_item_id, reason))
                logger.warning(
                    "Order item skipped",
                    session_id=session_id,
                    index=index,
                    menu_item_id=item.menu_item_id,
                    reason=reason,
                )
                trace_event("order.item_skipped", index=index, reason=reason)
                continue

            lines.append(_Line(item.menu_item_id, name, item.quantity, price))

        return lines, warnings

    def refresh_session_payment(self, session: DiningSession) -> str:
        """Re-derive the session's aggregate payment status from its orders."""
        rows = self._db.execute(
            select(Order.payment_status, func.count(Order.id))
            .where(Order.dining_session_id == session.id)
            .group_by(Order.payment_status)
        ).all()
        counts = {status: count for status, count in rows}
        total = sum(counts.values())
        paid = counts.get(PaymentStatus.PAID, 0)

        if total and paid == total:
            aggregate = PaymentStatus.PAID
        elif paid or counts.get(PaymentStatus.PARTIALLY_PAID, 0):
            aggregate = PaymentStatus.PARTIALLY_PAID
        else:
            aggregate = PaymentStatus.UNPAID

        if session.payment_status != aggregate:
            session.payment_status = aggregate
            self._db.flush()
        return aggregate

    # =========================================================================
    # Status updates
    # =========================================================================

    def get_order(self, tenant_id: int, order_id: int) -> Order:
        order = self._db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id, tenant_id=tenant_id)
        if order.tenant_id != tenant_id:
            raise TenantMismatchError("order", order_id, tenant_id=tenant_id)
        return order

    def update_order_status(self, tenant_id: int, order_id: int, status: str) -> Order:
        if status not in OrderStatus.ALL:
            raise InvalidStatusError("order", status, OrderStatus.ALL, order_id=order_id)

        order = self.get_order(tenant_id, order_id)
        previous = order.status
        order.status = status
        if status in OrderStatus.READY_STATES and order.actual_ready_at is None:
            order.actual_ready_at = utcnow()
        self._db.flush()

        logger.info("Order status updated", order_id=order_id, old=previous, new=status)
        return order

    def update_item_status(self, tenant_id: int, item_id: int, status: str) -> OrderItem:
        if status not in ItemStatus.ALL:
            raise InvalidStatusError("item", status, ItemStatus.ALL, item_id=item_id)

        item = self._db.get(OrderItem, item_id)
        if item is None:
            raise OrderItemNotFoundError(item_id, tenant_id=tenant_id)
        if item.tenant_id != tenant_id:
            raise TenantMismatchError("order item", item_id, tenant_id=tenant_id)

        item.status = status
        self._db.flush()
        logger.info("Order item status updated", item_id=item_id, order_id=item.order_id, new=status)
        return item

    def update_payment_status(self, tenant_id: int, order_id: int, status: str) -> Order:
        """Set one order's payment status. The session aggregate is left untouched."""
        if status not in PaymentStatus.ALL:
            raise InvalidStatusError("payment", status, PaymentStatus.ALL, order_id=order_id)

        order = self.get_order(tenant_id, order_id)
        order.payment_status = status
        self._db.flush()
        logger.info("Order payment status updated", order_id=order_id, new=status)
        return order

    def mark_paid(self, tenant_id: int, order_id: int, *, local_override: bool = False) -> MarkPaidResult:
        """
        Mark an order paid, confirming with the billing backend first unless
        local_override is set. When the backend cannot be reached the order is
        marked locally if payment_local_fallback allows it.

        Raises:
            ExternalServiceError: backend rejected the payment (502) or is
                unreachable with fallback disabled (503)
        """
        order = self.get_order(tenant_id, order_id)
        session = order.session

        if local_override:
            source: ConfirmationSource = "local_override"
        else:
            client = self._payments or PaymentConfirmationClient()
            table_label = self._db.scalar(select(Table.label).where(Table.id == session.table_id))
            try:
                client.confirm(
                    tenant_id=tenant_id,
                    order_id=order.id,
                    session_id=session.id,
                    table_label=table_label,
                    amount_cents=order.total_amount_cents,
                )
                source = "gateway"
            except PaymentBackendUnavailable as exc:
                if not settings.payment_local_fallback:
                    raise ExternalServiceError(
                        "billing backend",
                        is_unavailable=True,
                        retry_after=30,
                        order_id=order_id,
                        error=str(exc),
                    ) from exc
                logger.warning(
                    "Billing backend unavailable, marking paid locally",
                    order_id=order_id,
                    error=str(exc),
                )
                source = "local_fallback"

        order.payment_status = PaymentStatus.PAID
        self._db.flush()
        self.refresh_session_payment(session)
        trace_event("order.marked_paid", order_id=order_id, confirmation=source)
        logger.info("Order marked paid", order_id=order_id, confirmation=source)
        return MarkPaidResult(order, source)

    # =========================================================================
    # Reads
    # =========================================================================

    def list_orders(
        self,
        tenant_id: int,
        session_id: int | None = None,
        limit: int = Limits.ORDER_LIST_LIMIT,
    ) -> list[Order]:
        """Newest first."""
        stmt = (
            select(Order)
            .where(Order.tenant_id == tenant_id)
            .options(selectinload(Order.items))
            .order_by(Order.placed_at.desc(), Order.id.desc())
            .limit(limit)
        )
        if session_id is not None:
            stmt = stmt.where(Order.dining_session_id == session_id)
        return list(self._db.scalars(stmt).all())

    def kitchen_queue(self, tenant_id: int, active_only: bool = True) -> list[tuple[Order, str]]:
        """Orders with their table label and items, oldest first."""
        stmt = (
            select(Order, Table.label)
            .join(DiningSession, Order.dining_session_id == DiningSession.id)
            .join(Table, DiningSession.table_id == Table.id)
            .where(Order.tenant_id == tenant_id)
            .options(selectinload(Order.items))
            .order_by(Order.placed_at.asc(), Order.id.asc())
            .limit(Limits.KITCHEN_QUEUE_LIMIT)
        )
        if active_only:
            stmt = stmt.where(Order.status.in_(OrderStatus.KITCHEN_ACTIVE))
        return [(order, label) for order, label in self._db.execute(stmt).all()]
