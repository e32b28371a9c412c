"""
Order routers - /api/checkout, /api/orders/*
"""

from .checkout import router as checkout_router
from .routes import router as orders_router

__all__ = ["checkout_router", "orders_router"]
