"""
Health check utilities.

Every dependency check returns a HealthCheckResult with the same shape, so the
detailed health endpoint can aggregate them uniformly.

Usage:
    from shared.utils.health import run_health_check

    result = run_health_check("database", lambda: db.execute(text("SELECT 1")))
    result.to_dict()
    # {"status": "healthy", "component": "database", "latency_ms": 0.8}
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    status: HealthStatus
    component: str
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "status": self.status.value,
            "component": self.component,
        }
        if self.latency_ms is not None:
            result["latency_ms"] = round(self.latency_ms, 2)
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


def run_health_check(
    component: str,
    check: Callable[[], dict[str, Any] | None],
) -> HealthCheckResult:
    """
    Run one check. A returned dict becomes the details; any exception marks
    the component unhealthy.
    """
    start = time.perf_counter()
    try:
        details = check()
    except Exception as exc:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning("Health check failed", component=component, error=str(exc))
        return HealthCheckResult(
            status=HealthStatus.UNHEALTHY,
            component=component,
            latency_ms=latency_ms,
            error=str(exc),
        )
    return HealthCheckResult(
        status=HealthStatus.HEALTHY,
        component=component,
        latency_ms=(time.perf_counter() - start) * 1000,
        details=details if isinstance(details, dict) else {},
    )


def aggregate_status(results: list[HealthCheckResult]) -> HealthStatus:
    if all(r.healthy for r in results):
        return HealthStatus.HEALTHY
    return HealthStatus.DEGRADED
