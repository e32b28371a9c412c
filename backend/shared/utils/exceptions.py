"""
HTTP exceptions raised by the services.

Every exception logs itself with structured context when raised, so call
sites only need to raise. Subclasses pick their status code and log level
through class attributes.

Usage:
    from shared.utils.exceptions import NotFoundError, ValidationError

    raise TableNotFoundError(code_id=code_id, tenant_id=tenant_id)
    raise TenantMismatchError("session", session_id, tenant_id=tenant_id)
    raise ValidationError("items must not be empty")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


def _retry_headers(retry_after: int | None) -> dict[str, str] | None:
    return {"Retry-After": str(retry_after)} if retry_after else None


class AppException(HTTPException):
    """Base class: logs `detail` with the keyword context, then behaves as an HTTPException."""

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level: str = "warning"

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        code = status_code or self.status_code_default
        getattr(logger, self.log_level)(detail, status_code=code, **log_context)
        super().__init__(status_code=code, detail=detail, headers=headers)


# 404


class NotFoundError(AppException):
    """
    Usage:
        raise NotFoundError("Tenant", 7)
    """

    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        detail = f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        super().__init__(detail, entity=entity, entity_id=entity_id, **log_context)


class TableNotFoundError(NotFoundError):
    """No table matches the scanned code or label."""

    def __init__(self, identifier: int | str | None = None, **log_context: Any):
        super().__init__("Table", identifier, **log_context)


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: int | None = None, **log_context: Any):
        super().__init__("Session", session_id, **log_context)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class OrderItemNotFoundError(NotFoundError):
    def __init__(self, item_id: int | None = None, **log_context: Any):
        super().__init__("Order item", item_id, **log_context)


# 403


class ForbiddenError(AppException):
    """
    Usage:
        raise ForbiddenError("write to this session")
    """

    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, action: str | None = None, **log_context: Any):
        detail = f"Not allowed to {action}" if action else "Access denied"
        super().__init__(detail, action=action, **log_context)


class TenantMismatchError(ForbiddenError):
    """The entity exists but belongs to another tenant."""

    def __init__(self, entity: str, entity_id: int | None = None, **log_context: Any):
        super().__init__(
            f"access {entity} {entity_id} from this tenant",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class StaleSessionError(ForbiddenError):
    """A caller-supplied session is closed or belongs to another table."""

    def __init__(self, session_id: int, reason: str, **log_context: Any):
        super().__init__(
            f"write to session {session_id} ({reason})",
            session_id=session_id,
            reason=reason,
            **log_context,
        )


# 400


class ValidationError(AppException):
    """
    Usage:
        raise ValidationError("quantity must be positive", field="quantity", value=-1)
    """

    status_code_default = status.HTTP_400_BAD_REQUEST


class InvalidStatusError(ValidationError):
    """A status value outside the allowed set."""

    def __init__(self, entity: str, value: str, allowed: tuple[str, ...], **log_context: Any):
        detail = f"Invalid {entity} status '{value}', expected one of: {', '.join(allowed)}"
        super().__init__(detail, entity=entity, value=value, **log_context)


# 409


class ConflictError(AppException):
    """
    Usage:
        raise ConflictError("Could not bind a session to table 4")
    """

    status_code_default = status.HTTP_409_CONFLICT


# 502 / 503


class ServiceUnavailableError(AppException):
    """The database cannot be reached. Retryable."""

    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    log_level = "error"

    def __init__(self, service: str, retry_after: int | None = None, **log_context: Any):
        super().__init__(
            f"Service {service} temporarily unavailable",
            headers=_retry_headers(retry_after),
            service=service,
            **log_context,
        )


class ExternalServiceError(AppException):
    """The billing backend failed (502) or could not be reached (503)."""

    status_code_default = status.HTTP_502_BAD_GATEWAY
    log_level = "error"

    def __init__(
        self,
        service: str,
        is_unavailable: bool = False,
        retry_after: int | None = None,
        **log_context: Any,
    ):
        if is_unavailable:
            code = status.HTTP_503_SERVICE_UNAVAILABLE
            detail = f"Service {service} temporarily unavailable"
        else:
            code = status.HTTP_502_BAD_GATEWAY
            detail = f"Error communicating with {service}"
        super().__init__(
            detail,
            status_code=code,
            headers=_retry_headers(retry_after),
            service=service,
            **log_context,
        )
