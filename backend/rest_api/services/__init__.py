"""
Services module for business logic.

- domain/: Application services (binding, sessions, orders, overview)
- catalog/: Read-only menu lookup
- payments/: Billing backend client and circuit breaker

Usage:
    from rest_api.services.domain import DiningService
    service = DiningService(db)
    verdicts = service.overview(tenant_id, "eat_later")
"""
