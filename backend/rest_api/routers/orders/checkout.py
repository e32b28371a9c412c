"""
Checkout router.
Places an order on a table's live session (or on a caller-supplied session,
which is validated before use).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    ColorHint,
    ItemWarningOutput,
    OrderOutput,
    SessionOutput,
)
from rest_api.routers._common import resolve_tenant_id
from rest_api.services.domain import (
    DiningService,
    ItemRequest,
    OrderOptions,
    PaymentIntent,
    TableSelector,
)


router = APIRouter(prefix="/api", tags=["checkout"])


def _options_from(body: CheckoutRequest) -> OrderOptions:
    payment = None
    if body.payment is not None:
        payment = PaymentIntent(
            pay_now=body.payment.pay_now,
            pay_first=body.payment.pay_first,
            method=body.payment.method,
            status=body.payment.status,
            amount_cents=body.payment.amount_cents,
        )
    return OrderOptions(
        payment=payment,
        prep_time_minutes=body.prep_time_minutes,
        total_amount_cents=body.total_amount_cents,
    )


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(
    body: CheckoutRequest,
    db: Session = Depends(get_db),
) -> CheckoutResponse:
    """
    Place an order.

    Lines that cannot be recorded are returned in item_warnings; the order
    still succeeds with the rest. colors predicts the table's dashboard color
    under both policies after this order.
    """
    items = [
        ItemRequest(
            menu_item_id=item.menu_item_id,
            name=item.name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
        )
        for item in body.items
    ]
    result = DiningService(db).place_order(
        resolve_tenant_id(body.tenant_id),
        selector=TableSelector.from_request(body.code_id, body.table_label),
        session_id=body.session_id,
        items=items,
        options=_options_from(body),
    )
    if result.mock:
        return CheckoutResponse(mock=True)

    return CheckoutResponse(
        order=OrderOutput.model_validate(result.order),
        session=SessionOutput.model_validate(result.session),
        item_warnings=[ItemWarningOutput.model_validate(w) for w in result.item_warnings],
        colors=ColorHint(**result.colors) if result.colors else None,
    )
