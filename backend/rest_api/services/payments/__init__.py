"""
Payment Services - confirmation through the billing backend.

Provides:
- HTTP client for the billing backend's mark-paid endpoint
- Circuit breaker guarding that client
"""

from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerError,
    CircuitState,
    billing_breaker,
)
from .confirmation import PaymentBackendUnavailable, PaymentConfirmationClient

__all__ = [
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitState",
    "billing_breaker",
    # Confirmation
    "PaymentBackendUnavailable",
    "PaymentConfirmationClient",
]
