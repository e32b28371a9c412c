"""
QR scan router.
A diner's phone opens /qr/{code_id}; the scan is bound to the table's live
session and the browser is redirected to the ordering frontend.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import (
    ColorHint,
    EnsureSessionRequest,
    ScanResponse,
    SessionBindingResponse,
    SessionOutput,
    TableOutput,
)
from rest_api.routers._common import resolve_tenant_id
from rest_api.services.domain import DiningService, TableSelector


router = APIRouter(tags=["qr"])


@router.get("/qr/{code_id}", response_model=ScanResponse)
def scan_qr(
    code_id: str,
    tenant_id: int | None = Query(None, description="Tenant; defaults to DEFAULT_TENANT_ID"),
    as_json: bool = Query(False, alias="json", description="Return JSON instead of redirecting"),
    db: Session = Depends(get_db),
):
    """
    Resolve a scanned code and bind it to the table's active session,
    creating the session on first scan.

    Redirects (302) to the frontend with table, sessionId, qr and businessId
    query parameters, or returns the binding as JSON when json=1.
    """
    result = DiningService(db).scan(resolve_tenant_id(tenant_id), code_id)
    if not as_json:
        return RedirectResponse(result.redirect, status_code=302)

    return ScanResponse(
        table=TableOutput.model_validate(result.table),
        session=SessionOutput.model_validate(result.handle.session),
        created=result.handle.created,
        redirect=result.redirect,
        colors=ColorHint(**result.colors),
    )


@router.post("/api/qr/ensure-session", response_model=SessionBindingResponse)
def ensure_session(
    body: EnsureSessionRequest,
    db: Session = Depends(get_db),
) -> SessionBindingResponse:
    """Return the table's active session, creating it when needed. Idempotent."""
    selector = TableSelector.from_request(body.code_id, body.table_label)
    if selector is None:
        raise ValidationError("code_id or table_label is required")

    result = DiningService(db).ensure_session(resolve_tenant_id(body.tenant_id), selector)
    return SessionBindingResponse(
        table=TableOutput.model_validate(result.table),
        session=SessionOutput.model_validate(result.handle.session),
        created=result.handle.created,
    )
