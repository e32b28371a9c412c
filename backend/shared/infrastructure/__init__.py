"""
Infrastructure module: database, schema contract, request correlation, tracing.

Provides:
- Database sessions and tenant-scoped transactions (db.py)
- Schema contract verification (schema.py)
- X-Request-ID middleware and log filter (correlation.py)
- OpenTelemetry spans and decision events (telemetry.py)
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    get_db,
    get_db_context,
    tenant_transaction,
)
from shared.infrastructure.schema import SCHEMA_VERSION, ensure_schema, verify_schema

__all__ = [
    # db
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "tenant_transaction",
    # schema
    "SCHEMA_VERSION",
    "ensure_schema",
    "verify_schema",
]
