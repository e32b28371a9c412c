"""
Pytest configuration and fixtures for backend tests.
"""

import os

# The application engine is built at import time; point it at SQLite first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "true")
os.environ.setdefault("OTEL_ENABLED", "false")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from shared.infrastructure.db import get_db
from shared.infrastructure.schema import stamp_schema_version
from rest_api.models import Base, MenuItem, Table, Tenant
from rest_api.services.payments import (
    CircuitBreaker,
    CircuitBreakerConfig,
    PaymentConfirmationClient,
)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite starts transactions lazily and breaks SAVEPOINT; take over BEGIN
@event.listens_for(engine, "connect")
def _disable_pysqlite_begin(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)
    stamp_schema_version(engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seed_tenant(db_session):
    """Create a test tenant."""
    tenant = Tenant(name="Test Restaurant", slug="test")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session):
    """A second tenant, for isolation checks."""
    tenant = Tenant(name="Other Restaurant", slug="other")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def seed_menu_items(db_session, seed_tenant):
    """Two available dishes and one that is sold out."""
    items = [
        MenuItem(tenant_id=seed_tenant.id, name="Empanada", price_cents=500),
        MenuItem(tenant_id=seed_tenant.id, name="Pastel de choclo", price_cents=1250),
        MenuItem(
            tenant_id=seed_tenant.id,
            name="Curanto",
            price_cents=2000,
            is_available=False,
        ),
    ]
    db_session.add_all(items)
    db_session.commit()
    for item in items:
        db_session.refresh(item)
    return items


@pytest.fixture
def make_table(db_session):
    """
    Factory that inserts a table directly, bypassing the binding service.

    Usage:
        table = make_table(seed_tenant, "Terrace-2")
    """
    def factory(tenant, label="1", code_id=None, is_active=True):
        table = Table(
            tenant_id=tenant.id,
            label=label,
            code_id=code_id or f"code-{tenant.id}-{label}",
            is_active=is_active,
        )
        db_session.add(table)
        db_session.commit()
        db_session.refresh(table)
        return table

    return factory


@pytest.fixture
def seed_table(make_table, seed_tenant):
    """Table "1" with a known printed code."""
    return make_table(seed_tenant, label="1", code_id="qr-table-1")


@pytest.fixture
def breaker():
    """Fresh circuit breaker so tests never share failure counts."""
    return CircuitBreaker(
        CircuitBreakerConfig(
            name="billing-test",
            failure_threshold=2,
            success_threshold=1,
            timeout_seconds=60.0,
            half_open_max_calls=1,
        )
    )


@pytest.fixture
def billing_client(breaker):
    """
    Factory for a payment client backed by a mock transport.

    Usage:
        client = billing_client(lambda request: httpx.Response(200, json={"ok": True}))
    """
    def factory(handler):
        return PaymentConfirmationClient(
            base_url="http://billing.test",
            timeout=1.0,
            transport=httpx.MockTransport(handler),
            breaker=breaker,
        )

    return factory
