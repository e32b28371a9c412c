"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its dependencies.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.schema import SCHEMA_VERSION, verify_schema
from shared.utils.health import aggregate_status, run_health_check
from rest_api.models import Base
from rest_api.services.payments import billing_breaker


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": "healthy",
        "service": "tableside-api",
        "environment": settings.environment,
    }


@router.get("/health/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """
    Checks database connectivity and the schema contract.
    Returns 503 Service Unavailable if any dependency is down.
    """

    def check_database() -> None:
        db.execute(text("SELECT 1"))

    def check_schema() -> dict:
        problems = verify_schema(db.connection(), Base.metadata)
        if problems:
            raise RuntimeError("; ".join(problems))
        return {"version": SCHEMA_VERSION}

    results = [
        run_health_check("database", check_database),
        run_health_check("schema", check_schema),
    ]
    status = aggregate_status(results)

    checks = {
        "service": "tableside-api",
        "environment": settings.environment,
        "status": status.value,
        "dependencies": {r.component: r.to_dict() for r in results},
        "circuit_breakers": {"billing": billing_breaker.snapshot()},
    }

    if not all(r.healthy for r in results):
        return JSONResponse(content=checks, status_code=503)
    return checks
