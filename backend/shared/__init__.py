"""
Shared module for code used by the REST API, the CLI and the tests.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Statuses, display policies, limits

- shared.infrastructure: Database and tracing
  - db.py: SQLAlchemy sessions, tenant_transaction()
  - schema.py: Schema version contract
  - correlation.py: X-Request-ID propagation
  - telemetry.py: OpenTelemetry setup and spans

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Pydantic request/response schemas
  - health.py: Health check helpers

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, tenant_transaction
    from shared.config.settings import settings
    from shared.config.constants import SessionStatus, DisplayPolicy
    from shared.utils.exceptions import NotFoundError, ConflictError
"""
