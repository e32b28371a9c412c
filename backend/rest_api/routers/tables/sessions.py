"""
Sessions router.
Staff-side session lifecycle and the table color dashboard.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.config.constants import DisplayPolicy
from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    CloseSessionRequest,
    CloseSessionResponse,
    OrderOutput,
    OverviewResponse,
    SessionBindingResponse,
    SessionOutput,
    StartSessionRequest,
    TableDetailResponse,
    TableOutput,
    VerdictOutput,
)
from rest_api.routers._common import resolve_tenant_id
from rest_api.services.domain import DiningService


router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("/start", response_model=SessionBindingResponse)
def start_session(
    body: StartSessionRequest,
    db: Session = Depends(get_db),
) -> SessionBindingResponse:
    """Open (or reuse) the active session of a table by label."""
    result = DiningService(db).start_session(resolve_tenant_id(body.tenant_id), body.table_label)
    return SessionBindingResponse(
        table=TableOutput.model_validate(result.table),
        session=SessionOutput.model_validate(result.handle.session),
        created=result.handle.created,
    )


@router.post("/close", response_model=CloseSessionResponse)
def close_session(
    body: CloseSessionRequest,
    db: Session = Depends(get_db),
) -> CloseSessionResponse:
    """
    Close a session as completed or cleared. Safe to repeat: closing a closed
    session succeeds with already_closed=true.
    """
    result = DiningService(db).close_session(
        resolve_tenant_id(body.tenant_id),
        body.session_id,
        table_label=body.table_label,
        final_status=body.status,
    )
    return CloseSessionResponse(
        session_id=result.session.id,
        status=result.session.status,
        already_closed=result.already_closed,
        pointer_cleared=result.pointer_cleared,
    )


@router.get("/overview", response_model=OverviewResponse)
def sessions_overview(
    tenant_id: int | None = Query(None),
    mode: str = Query(DisplayPolicy.DEFAULT, description="eat_later or pay_first"),
    db: Session = Depends(get_db),
) -> OverviewResponse:
    """One color verdict per table, numeric labels first."""
    resolved = resolve_tenant_id(tenant_id)
    policy = mode.strip().lower()
    verdicts = DiningService(db).overview(resolved, policy)
    return OverviewResponse(
        tenant_id=resolved,
        mode=policy,
        tables=[
            VerdictOutput(
                table_id=v.table_id,
                table_label=v.table_label,
                session_id=v.session_id,
                color=v.color,
                reason=v.reason,
                orders_count=v.counters.orders_count,
                unpaid_count=v.counters.unpaid_count,
                paid_count=v.counters.paid_count,
                any_ready=v.counters.any_ready,
                first_ready_at=v.first_ready_at,
            )
            for v in verdicts
        ],
    )


@router.get("/table", response_model=TableDetailResponse)
def table_detail(
    table_label: str = Query(..., max_length=50),
    tenant_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> TableDetailResponse:
    """A table, its live session and that session's most recent orders."""
    detail = DiningService(db).table_detail(resolve_tenant_id(tenant_id), table_label)
    return TableDetailResponse(
        table=TableOutput.model_validate(detail.table),
        session=SessionOutput.model_validate(detail.session) if detail.session else None,
        orders=[OrderOutput.model_validate(o) for o in detail.orders],
    )
