"""
Table routers - /qr/*, /api/qr/*, /api/sessions/*
Scan binding, session lifecycle and the color dashboard.
"""

from .scan import router as scan_router
from .sessions import router as sessions_router

__all__ = ["scan_router", "sessions_router"]
