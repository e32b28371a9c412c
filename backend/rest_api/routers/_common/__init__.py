"""
Common utilities shared across routers.
"""

from .tenancy import resolve_tenant_id

__all__ = ["resolve_tenant_id"]
