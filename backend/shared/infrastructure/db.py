"""
Database configuration and session management.
Uses SQLAlchemy 2.0 sessions; one Session per request, one transaction per
operation.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import settings
from shared.config.logging import get_logger
from shared.utils.exceptions import ServiceUnavailableError

logger = get_logger(__name__)

# Seconds a client should wait before retrying after the database dropped out
DB_RETRY_AFTER_SECONDS = 5


def _engine_options(url: str) -> dict[str, Any]:
    """Pool and timeout options for the configured backend."""
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": 30,  # Wait max 30s for connection from pool
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "connect_args": {"connect_timeout": settings.db_connect_timeout},
    }


engine = create_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/orders")
        def list_orders(db: Session = Depends(get_db)):
            ...

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            OverviewService(db).overview(tenant_id, "eat_later")
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def apply_tenant_context(db: Session, tenant_id: int) -> None:
    """
    Expose the tenant to row level security policies for the current
    transaction. Only PostgreSQL has the setting; other backends rely on the
    explicit tenant filters every query carries.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(
        text("SELECT set_config('app.current_tenant', :tenant, true)"),
        {"tenant": str(tenant_id)},
    )


@contextmanager
def tenant_transaction(db: Session, tenant_id: int) -> Generator[Session, None, None]:
    """
    Run one unit of work scoped to a tenant.

    Commits on success and rolls back on any exception. Connectivity failures
    surface as ServiceUnavailableError so callers can retry.

    Usage:
        with tenant_transaction(db, tenant_id):
            handle = sessions.ensure_active_session(table)
    """
    try:
        apply_tenant_context(db, tenant_id)
        yield db
        db.commit()
    except (OperationalError, InterfaceError) as exc:
        db.rollback()
        raise ServiceUnavailableError(
            "database",
            retry_after=DB_RETRY_AFTER_SECONDS,
            tenant_id=tenant_id,
            error=str(exc.orig) if exc.orig is not None else str(exc),
        ) from exc
    except Exception:
        db.rollback()
        raise
