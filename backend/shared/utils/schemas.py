"""
Shared Pydantic schemas used across the application.

Status fields on requests are plain strings: the domain services validate
them so an unknown value is a 400 like every other invalid argument.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Common Types
# =============================================================================

Color = Literal["ash", "yellow", "green"]
Policy = Literal["eat_later", "pay_first"]
PaymentConfirmation = Literal["local_override", "gateway", "local_fallback"]


# =============================================================================
# Table and Session Schemas
# =============================================================================


class TableOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    label: str
    code_id: str
    current_session_id: int | None = None
    last_scan_at: datetime | None = None


class SessionOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_id: int
    status: str
    payment_status: str
    started_at: datetime
    ended_at: datetime | None = None


class EnsureSessionRequest(BaseModel):
    """Bind a scan to a session, by printed code or by table label."""

    tenant_id: int | None = None
    code_id: str | None = Field(default=None, max_length=64)
    table_label: str | None = Field(default=None, max_length=50)


class StartSessionRequest(BaseModel):
    tenant_id: int | None = None
    table_label: str = Field(max_length=50)


class SessionBindingResponse(BaseModel):
    """Session bound to a table; created is False when an active one was reused."""

    table: TableOutput
    session: SessionOutput
    created: bool


class ColorHint(BaseModel):
    """Predicted dashboard color of the table under each policy."""

    eat_later: Color
    pay_first: Color


class ScanResponse(SessionBindingResponse):
    redirect: str
    colors: ColorHint


class CloseSessionRequest(BaseModel):
    tenant_id: int | None = None
    session_id: int
    table_label: str | None = Field(default=None, max_length=50)
    status: str = "completed"  # completed | cleared


class CloseSessionResponse(BaseModel):
    session_id: int
    status: str
    already_closed: bool
    pointer_cleared: bool


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    """
    One requested line. The price comes from the menu unless given here;
    name is required only when menu_item_id is absent.
    """

    menu_item_id: int | None = None
    name: str | None = Field(default=None, max_length=200)
    quantity: int = 1
    unit_price_cents: int | None = None


class PaymentIntentInput(BaseModel):
    """Payment hints sent with a checkout. Any positive signal marks the order paid."""

    pay_now: bool = False
    pay_first: bool = False
    method: str | None = Field(default=None, max_length=30)  # "online", "paid", "cash", ...
    status: str | None = Field(default=None, max_length=30)
    amount_cents: int | None = None


class CheckoutRequest(BaseModel):
    tenant_id: int | None = None
    table_label: str | None = Field(default=None, max_length=50)
    code_id: str | None = Field(default=None, max_length=64)
    session_id: int | None = None
    items: list[OrderItemInput] = Field(default_factory=list)
    payment: PaymentIntentInput | None = None
    prep_time_minutes: int | None = Field(default=None, ge=0)
    total_amount_cents: int | None = None


class OrderItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int | None = None
    item_name: str
    quantity: int
    unit_price_cents: int
    status: str


class OrderOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    dining_session_id: int
    status: str
    payment_status: str
    prep_time_minutes: int
    placed_at: datetime
    estimated_ready_at: datetime
    actual_ready_at: datetime | None = None
    total_amount_cents: int
    items: list[OrderItemOutput] = Field(default_factory=list)


class KitchenOrderOutput(OrderOutput):
    table_label: str


class ItemWarningOutput(BaseModel):
    """An order line that could not be inserted."""

    model_config = ConfigDict(from_attributes=True)

    index: int
    menu_item_id: int | None = None
    reason: str


class CheckoutResponse(BaseModel):
    """
    Result of placing an order.
    mock is True only in degraded mode, when nothing was persisted.
    """

    order: OrderOutput | None = None
    session: SessionOutput | None = None
    item_warnings: list[ItemWarningOutput] = Field(default_factory=list)
    colors: ColorHint | None = None
    mock: bool = False


class StatusUpdateRequest(BaseModel):
    tenant_id: int | None = None
    status: str


class PaymentUpdateRequest(BaseModel):
    tenant_id: int | None = None
    payment_status: str


class MarkPaidRequest(BaseModel):
    tenant_id: int | None = None
    local_override: bool = False


class MarkPaidResponse(BaseModel):
    order: OrderOutput
    confirmation: PaymentConfirmation


# =============================================================================
# Dashboard Schemas
# =============================================================================


class VerdictOutput(BaseModel):
    """Color of one table plus the counters it was derived from."""

    table_id: int
    table_label: str
    session_id: int | None = None
    color: Color
    reason: str
    orders_count: int = 0
    unpaid_count: int = 0
    paid_count: int = 0
    any_ready: bool = False
    first_ready_at: datetime | None = None


class OverviewResponse(BaseModel):
    tenant_id: int
    mode: Policy
    tables: list[VerdictOutput]


class TableDetailResponse(BaseModel):
    table: TableOutput
    session: SessionOutput | None = None
    orders: list[OrderOutput] = Field(default_factory=list)
