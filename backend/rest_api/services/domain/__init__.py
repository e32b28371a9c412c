"""
Domain Services - application layer for table-side ordering.

Structure:
    Router (thin controller)
        ↓
    DiningService (one transaction per external operation)
        ↓
    TableBindingService / SessionService / OrderService / OverviewService
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import DiningService

    # In router
    result = DiningService(db).scan(tenant_id, code_id)
"""

from .table_binding_service import TableBindingService, TableSelector
from .session_service import CloseResult, SessionHandle, SessionService
from .order_service import (
    ItemRequest,
    ItemWarning,
    MarkPaidResult,
    OrderOptions,
    OrderService,
    PaymentIntent,
    PlacedOrder,
)
from .status_classifier import SessionCounters, Verdict, classify, predict_colors
from .overview_service import OverviewService, TableVerdict
from .dining_service import (
    BindingResult,
    CheckoutResult,
    DiningService,
    ScanResult,
    TableDetail,
)

__all__ = [
    # Binding
    "TableBindingService",
    "TableSelector",
    # Sessions
    "SessionService",
    "SessionHandle",
    "CloseResult",
    # Orders
    "OrderService",
    "ItemRequest",
    "ItemWarning",
    "OrderOptions",
    "PaymentIntent",
    "PlacedOrder",
    "MarkPaidResult",
    # Classification
    "SessionCounters",
    "Verdict",
    "classify",
    "predict_colors",
    "OverviewService",
    "TableVerdict",
    # Application service
    "DiningService",
    "BindingResult",
    "CheckoutResult",
    "ScanResult",
    "TableDetail",
]
