"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.infrastructure.db import engine
from shared.infrastructure.schema import ensure_schema
from shared.infrastructure.telemetry import shutdown_telemetry
from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from rest_api.models import Base


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    # Initialize logging
    setup_logging()

    # Validate configuration before startup
    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error: %s", error)
        if settings.is_production:
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(config_errors)}. "
                "Server will not start with unsafe configuration."
            )
        else:
            logger.warning(
                "Running with unsafe defaults (acceptable for development only)"
            )

    # Startup
    logger.info("Starting REST API", port=settings.rest_api_port, env=settings.environment)

    # Refuse to serve against a schema that does not match the models
    ensure_schema(engine, Base.metadata, auto_create=settings.auto_create_schema)

    yield

    # Shutdown
    logger.info("Shutting down REST API")

    shutdown_telemetry()
    engine.dispose()
    logger.info("Database engine disposed")
