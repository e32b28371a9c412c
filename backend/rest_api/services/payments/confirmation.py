"""
Payment confirmation client.

Asks the billing backend to confirm that an order has been paid before the
ledger marks it. The backend exposes POST /api/qr/mark-paid and answers 2xx
when it accepts the payment.
"""

from typing import Any

import httpx

from shared.config.logging import payments_logger as logger
from shared.config.settings import settings
from shared.utils.exceptions import ExternalServiceError
from rest_api.services.payments.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    billing_breaker,
)

MARK_PAID_PATH = "/api/qr/mark-paid"


class PaymentBackendUnavailable(Exception):
    """The billing backend could not be reached (or is not configured)."""


class PaymentConfirmationClient:
    """
    Thin HTTP client for the billing backend.

    Raises:
        PaymentBackendUnavailable: connection failure, timeout, 5xx answer,
            open circuit or no backend configured
        ExternalServiceError: the backend answered and rejected the payment
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        self.base_url = (settings.payment_gateway_url if base_url is None else base_url).rstrip("/")
        self.timeout = settings.payment_gateway_timeout if timeout is None else timeout
        self._transport = transport
        self._breaker = breaker or billing_breaker

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        with httpx.Client(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            return client.post(MARK_PAID_PATH, json=payload)

    def confirm(
        self,
        *,
        tenant_id: int,
        order_id: int,
        session_id: int,
        table_label: str | None,
        amount_cents: int,
    ) -> dict[str, Any]:
        """Request confirmation for one order. Returns the backend's JSON body, {} when it sent none."""
        if not self.is_configured:
            raise PaymentBackendUnavailable("billing backend not configured")

        payload = {
            "tenant_id": tenant_id,
            "order_id": order_id,
            "session_id": session_id,
            "table_label": table_label,
            "total_amount_cents": amount_cents,
        }
        logger.info("Requesting payment confirmation", order_id=order_id, url=self.base_url)

        try:
            with self._breaker.call():
                try:
                    response = self._post(payload)
                except httpx.TransportError as exc:
                    raise PaymentBackendUnavailable(f"billing backend unreachable: {exc}") from exc
                if response.status_code >= 500:
                    raise PaymentBackendUnavailable(
                        f"billing backend answered {response.status_code}"
                    )
        except CircuitBreakerError as exc:
            raise PaymentBackendUnavailable(str(exc)) from exc

        if response.is_error:
            raise ExternalServiceError(
                "billing backend",
                order_id=order_id,
                upstream_status=response.status_code,
                upstream_body=response.text[:200],
            )

        logger.info("Payment confirmed by billing backend", order_id=order_id)
        try:
            return response.json()
        except ValueError:
            # Empty or non-JSON acknowledgement still means confirmed
            return {}
