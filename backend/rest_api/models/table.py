"""
Table and Session Models: Table, DiningSession.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import PaymentStatus, SessionStatus

from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .order import Order


class Table(TimestampMixin, Base):
    """
    Physical table in a restaurant, addressed by a printed QR code.

    current_session_id is a weak pointer to the presently active session. It
    may reference a closed session (or nothing); readers always re-check the
    session status before trusting it.
    """

    # "table" is a reserved SQL keyword
    __tablename__ = "restaurant_table"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)  # "4", "Terrace-2"
    # Opaque token printed in the QR scan URL
    code_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    current_session_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey(
            "dining_session.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_table_current_session",
        ),
        nullable=True,
    )
    last_scan_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "label", name="uq_table_tenant_label"),
    )

    # Relationships
    sessions: Mapped[list["DiningSession"]] = relationship(
        back_populates="table", foreign_keys="DiningSession.table_id"
    )
    current_session: Mapped[Optional["DiningSession"]] = relationship(
        foreign_keys=[current_session_id], post_update=True
    )

    def __repr__(self) -> str:
        return f"<Table(id={self.id}, label='{self.label}', current_session_id={self.current_session_id})>"


class DiningSession(TimestampMixin, Base):
    """
    One party's visit to a table, from first scan to close.
    At most one session per table is active; closing is terminal.
    """

    __tablename__ = "dining_session"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    table_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("restaurant_table.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        Text, default=SessionStatus.ACTIVE, nullable=False, index=True
    )  # active, completed, cleared
    payment_status: Mapped[str] = mapped_column(
        Text, default=PaymentStatus.UNPAID, nullable=False
    )  # unpaid, partially_paid, paid
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        # Last line of defence for "one active session per table"
        Index(
            "uq_dining_session_one_active",
            "table_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index("ix_dining_session_tenant_status", "tenant_id", "status"),
    )

    # Relationships
    table: Mapped["Table"] = relationship(back_populates="sessions", foreign_keys=[table_id])
    orders: Mapped[list["Order"]] = relationship(back_populates="session")

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<DiningSession(id={self.id}, table_id={self.table_id}, status={self.status})>"
