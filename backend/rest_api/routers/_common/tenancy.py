"""
Tenant resolution for requests.
"""

from shared.config.settings import settings
from shared.utils.exceptions import ValidationError


def resolve_tenant_id(tenant_id: int | None) -> int:
    """
    Tenant from the request, else the deployment default.

    Raises ValidationError when neither is available.
    """
    if tenant_id is not None:
        return tenant_id
    if settings.default_tenant_id is not None:
        return settings.default_tenant_id
    raise ValidationError("tenant_id is required")
