"""
CORS for the table menu and dashboard frontends.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings

# Vite dev servers: table menu and dashboard
DEV_PORTS = (5173, 5176, 5177)


def get_cors_origins() -> list[str]:
    """
    ALLOWED_ORIGINS (comma-separated) wins when set. Otherwise the local dev
    servers plus the frontend origin that scan redirects point at.
    """
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

    origins = [f"http://{host}:{port}" for host in ("localhost", "127.0.0.1") for port in DEV_PORTS]
    frontend = settings.frontend_origin.rstrip("/")
    if frontend and frontend not in origins:
        origins.append(frontend)
    return origins


def configure_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=0 if settings.environment == "development" else 600,
    )
