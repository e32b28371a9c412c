"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from shared.config.settings import settings
from shared.infrastructure.telemetry import setup_telemetry
from rest_api.core.cors import configure_cors
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_exception_handlers, register_middlewares
from rest_api.routers.orders import checkout_router, orders_router
from rest_api.routers.public import health_router
from rest_api.routers.tables import scan_router, sessions_router


# Create FastAPI application
app = FastAPI(
    title="Tableside API",
    description="QR table ordering: table binding, dining sessions, orders and table colors",
    version="0.1.0",
    lifespan=lifespan,
)

register_middlewares(app)
configure_cors(app)
register_exception_handlers(app)

# Instrumentation wraps the app, so it is installed before startup
setup_telemetry(app)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(scan_router)
app.include_router(sessions_router)
app.include_router(checkout_router)
app.include_router(orders_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.debug,
    )
