"""
Orders router.
Order listing, the kitchen queue, and status/payment updates.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    KitchenOrderOutput,
    MarkPaidRequest,
    MarkPaidResponse,
    OrderItemOutput,
    OrderOutput,
    PaymentUpdateRequest,
    StatusUpdateRequest,
)
from rest_api.routers._common import resolve_tenant_id
from rest_api.services.domain import DiningService


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=list[OrderOutput])
def list_orders(
    tenant_id: int | None = Query(None),
    session_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> list[OrderOutput]:
    """Latest orders of the tenant (or of one session), newest first."""
    orders = DiningService(db).list_orders(resolve_tenant_id(tenant_id), session_id)
    return [OrderOutput.model_validate(o) for o in orders]


@router.get("/kitchen", response_model=list[KitchenOrderOutput])
def kitchen_queue(
    tenant_id: int | None = Query(None),
    active_only: bool = Query(True),
    db: Session = Depends(get_db),
) -> list[KitchenOrderOutput]:
    """Orders to cook, oldest first, with table label and items."""
    rows = DiningService(db).kitchen_queue(resolve_tenant_id(tenant_id), active_only)
    return [
        KitchenOrderOutput(
            **OrderOutput.model_validate(order).model_dump(),
            table_label=label,
        )
        for order, label in rows
    ]


@router.patch("/items/{item_id}/status", response_model=OrderItemOutput)
def update_item_status(
    item_id: int,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
) -> OrderItemOutput:
    item = DiningService(db).update_item_status(
        resolve_tenant_id(body.tenant_id), item_id, body.status
    )
    return OrderItemOutput.model_validate(item)


@router.patch("/{order_id}/status", response_model=OrderOutput)
def update_order_status(
    order_id: int,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
) -> OrderOutput:
    """Set the preparation status; READY/COMPLETED stamps actual_ready_at once."""
    order = DiningService(db).update_order_status(
        resolve_tenant_id(body.tenant_id), order_id, body.status
    )
    return OrderOutput.model_validate(order)


@router.patch("/{order_id}/payment", response_model=OrderOutput)
def update_payment_status(
    order_id: int,
    body: PaymentUpdateRequest,
    db: Session = Depends(get_db),
) -> OrderOutput:
    order = DiningService(db).update_payment_status(
        resolve_tenant_id(body.tenant_id), order_id, body.payment_status
    )
    return OrderOutput.model_validate(order)


@router.post("/{order_id}/mark-paid", response_model=MarkPaidResponse)
def mark_paid(
    order_id: int,
    body: MarkPaidRequest,
    db: Session = Depends(get_db),
) -> MarkPaidResponse:
    """
    Mark an order paid. Without local_override the billing backend confirms
    first; confirmation tells which path marked it.
    """
    result = DiningService(db).mark_paid(
        resolve_tenant_id(body.tenant_id), order_id, local_override=body.local_override
    )
    return MarkPaidResponse(
        order=OrderOutput.model_validate(result.order),
        confirmation=result.confirmation,
    )
