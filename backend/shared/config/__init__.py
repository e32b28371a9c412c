"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings, DATABASE_URL
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import (
    SessionStatus,
    OrderStatus,
    ItemStatus,
    PaymentStatus,
    DisplayPolicy,
    TableColor,
    Limits,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "SessionStatus",
    "OrderStatus",
    "ItemStatus",
    "PaymentStatus",
    "DisplayPolicy",
    "TableColor",
    "Limits",
]
