"""
Order Models: Order, OrderItem.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import ItemStatus, OrderStatus, PaymentStatus

from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .table import DiningSession


class Order(TimestampMixin, Base):
    """
    One checkout within a dining session.
    Orders are append-only; only status fields change after placement.
    """

    __tablename__ = "customer_order"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    dining_session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("dining_session.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        Text, default=OrderStatus.PLACED, nullable=False, index=True
    )  # PLACED, IN_PROGRESS, READY, COMPLETED, DELAYED
    payment_status: Mapped[str] = mapped_column(
        Text, default=PaymentStatus.UNPAID, nullable=False
    )
    prep_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    placed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    estimated_ready_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Stamped once, the first time the order becomes READY or COMPLETED
    actual_ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    total_amount_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("total_amount_cents >= 0", name="chk_order_total_non_negative"),
        Index("ix_order_session_status", "dining_session_id", "status"),
        Index("ix_order_tenant_placed", "tenant_id", "placed_at"),
    )

    # Relationships
    session: Mapped["DiningSession"] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", order_by="OrderItem.id"
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status='{self.status}', session_id={self.dining_session_id})>"


class OrderItem(TimestampMixin, Base):
    """
    A single line of an order.
    Stores the name and price at the time of order for historical accuracy.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customer_order.id"), nullable=False, index=True
    )
    menu_item_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("menu_item.id", ondelete="SET NULL"), index=True
    )
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, default=ItemStatus.QUEUED, nullable=False
    )  # QUEUED, IN_PROGRESS, COMPLETED

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
        CheckConstraint("unit_price_cents >= 0", name="chk_order_item_price_non_negative"),
    )

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="items")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def __repr__(self) -> str:
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, qty={self.quantity})>"
