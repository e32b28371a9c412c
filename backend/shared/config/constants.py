"""
Centralized constants for the backend application.
Avoids magic strings for statuses, policies and colors.

Usage:
    from shared.config.constants import OrderStatus, SessionStatus

    if order.status in OrderStatus.READY_STATES:
        ...
"""

from typing import Final


# =============================================================================
# Entity Status Constants
# =============================================================================


class SessionStatus:
    """Dining session status constants."""

    ACTIVE: Final[str] = "active"
    COMPLETED: Final[str] = "completed"
    CLEARED: Final[str] = "cleared"

    ALL: Final[tuple[str, ...]] = (ACTIVE, COMPLETED, CLEARED)
    # Statuses a close operation may set
    CLOSED: Final[tuple[str, ...]] = (COMPLETED, CLEARED)


class OrderStatus:
    """Order preparation status constants."""

    PLACED: Final[str] = "PLACED"
    IN_PROGRESS: Final[str] = "IN_PROGRESS"
    READY: Final[str] = "READY"
    COMPLETED: Final[str] = "COMPLETED"
    DELAYED: Final[str] = "DELAYED"

    ALL: Final[tuple[str, ...]] = (PLACED, IN_PROGRESS, READY, COMPLETED, DELAYED)
    # Entering one of these stamps actual_ready_at
    READY_STATES: Final[tuple[str, ...]] = (READY, COMPLETED)
    # Shown on the kitchen queue
    KITCHEN_ACTIVE: Final[tuple[str, ...]] = (PLACED, IN_PROGRESS, READY)


class ItemStatus:
    """Order item status constants."""

    QUEUED: Final[str] = "QUEUED"
    IN_PROGRESS: Final[str] = "IN_PROGRESS"
    COMPLETED: Final[str] = "COMPLETED"

    ALL: Final[tuple[str, ...]] = (QUEUED, IN_PROGRESS, COMPLETED)


class PaymentStatus:
    """Payment status constants, shared by orders and sessions."""

    UNPAID: Final[str] = "unpaid"
    PARTIALLY_PAID: Final[str] = "partially_paid"
    PAID: Final[str] = "paid"

    ALL: Final[tuple[str, ...]] = (UNPAID, PARTIALLY_PAID, PAID)


# =============================================================================
# Dashboard
# =============================================================================


class DisplayPolicy:
    """How table colors map to session/order state."""

    EAT_LATER: Final[str] = "eat_later"  # pay at the end
    PAY_FIRST: Final[str] = "pay_first"  # pay before food arrives

    ALL: Final[tuple[str, ...]] = (EAT_LATER, PAY_FIRST)
    DEFAULT: Final[str] = EAT_LATER


class TableColor:
    """Dashboard color verdicts."""

    ASH: Final[str] = "ash"
    YELLOW: Final[str] = "yellow"
    GREEN: Final[str] = "green"


# Payment method hints that mean "already paid" when sent with an order
IMMEDIATE_PAYMENT_METHODS: Final[frozenset[str]] = frozenset({"online", "paid"})


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Input and listing limits."""

    MAX_TABLE_LABEL_LENGTH: Final[int] = 50
    MAX_ITEMS_PER_ORDER: Final[int] = 100
    MAX_ITEM_QUANTITY: Final[int] = 99
    MAX_PREP_TIME_MINUTES: Final[int] = 24 * 60
    TABLE_DETAIL_ORDERS: Final[int] = 25
    ORDER_LIST_LIMIT: Final[int] = 50
    KITCHEN_QUEUE_LIMIT: Final[int] = 200
