"""
Catalog Services - read-only menu access for the ordering core.
"""

from .menu_lookup import MenuLookup

__all__ = ["MenuLookup"]
