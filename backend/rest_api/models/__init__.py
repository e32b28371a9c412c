"""
SQLAlchemy ORM Models Package.

Models are organized into domain-specific modules:
- base: Base class, TimestampMixin, BigIntPK
- tenant: Tenant
- catalog: MenuItem
- table: Table, DiningSession
- order: Order, OrderItem
- schema: SchemaVersion
"""

from .base import Base, BigIntPK, TimestampMixin, utcnow
from .tenant import Tenant
from .catalog import MenuItem
from .table import Table, DiningSession
from .order import Order, OrderItem
from .schema import SchemaVersion

__all__ = [
    "Base",
    "BigIntPK",
    "TimestampMixin",
    "utcnow",
    "Tenant",
    "MenuItem",
    "Table",
    "DiningSession",
    "Order",
    "OrderItem",
    "SchemaVersion",
]
