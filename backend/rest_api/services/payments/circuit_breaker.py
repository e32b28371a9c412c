"""
Circuit breaker guarding the billing backend.

closed -> open after `failure_threshold` consecutive failures.
open -> half_open once `timeout_seconds` have passed since the last failure;
up to `half_open_max_calls` probes are let through at a time.
half_open -> closed after `success_threshold` successful probes, back to open
on the first failed one.

Service code runs in FastAPI's worker threads, so every read-modify-write
happens under a lock.

Usage:
    with billing_breaker.call():
        response = client.post(...)
"""

import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum

from shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    name: str
    failure_threshold: int = 5
    success_threshold: int = 2
    timeout_seconds: float = 30.0
    half_open_max_calls: int = 2


@dataclass
class CircuitBreakerStats:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


class CircuitBreakerError(Exception):
    """The call was rejected without reaching the backend."""

    def __init__(self, breaker_name: str, retry_after: float):
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"{breaker_name} circuit is open, retry in {retry_after:.1f}s")


class CircuitBreaker:
    def __init__(self, config: CircuitBreakerConfig):
        self.config = config
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._probe_successes = 0
        self._probes_in_flight = 0
        self._opened_at = 0.0
        self._stats = CircuitBreakerStats()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        return self._stats

    def _move_to(self, state: CircuitState) -> None:
        # lock held
        logger.info(
            "Circuit state changed",
            breaker=self.config.name,
            old_state=self._state.value,
            new_state=state.value,
            consecutive_failures=self._consecutive_failures,
        )
        self._state = state
        self._stats.state_changes += 1
        self._probe_successes = 0
        self._probes_in_flight = 0
        if state is CircuitState.OPEN:
            self._opened_at = time.monotonic()
        else:
            self._consecutive_failures = 0

    def _admit(self) -> None:
        """Reserve a slot for one call or raise CircuitBreakerError."""
        with self._lock:
            if self._state is CircuitState.OPEN:
                remaining = self.config.timeout_seconds - (time.monotonic() - self._opened_at)
                if remaining > 0:
                    self._stats.rejected_calls += 1
                    raise CircuitBreakerError(self.config.name, remaining)
                self._move_to(CircuitState.HALF_OPEN)

            if self._state is CircuitState.HALF_OPEN:
                if self._probes_in_flight >= self.config.half_open_max_calls:
                    self._stats.rejected_calls += 1
                    raise CircuitBreakerError(self.config.name, 1.0)
                self._probes_in_flight += 1

    def _on_success(self) -> None:
        with self._lock:
            self._stats.total_calls += 1
            self._stats.successful_calls += 1
            if self._state is not CircuitState.HALF_OPEN:
                self._consecutive_failures = 0
                return
            self._probes_in_flight -= 1
            self._probe_successes += 1
            if self._probe_successes >= self.config.success_threshold:
                self._move_to(CircuitState.CLOSED)

    def _on_failure(self, error: Exception) -> None:
        with self._lock:
            self._stats.total_calls += 1
            self._stats.failed_calls += 1
            self._consecutive_failures += 1
            logger.warning(
                "Billing call failed",
                breaker=self.config.name,
                error=str(error),
                consecutive_failures=self._consecutive_failures,
            )
            if (
                self._state is CircuitState.HALF_OPEN
                or self._consecutive_failures >= self.config.failure_threshold
            ):
                self._move_to(CircuitState.OPEN)

    @contextmanager
    def call(self) -> Generator[None, None, None]:
        """Any exception raised by the body counts as a failure and propagates."""
        self._admit()
        try:
            yield
        except Exception as exc:
            self._on_failure(exc)
            raise
        self._on_success()

    def reset(self) -> None:
        """Force the circuit closed. Counters in stats are kept."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._probe_successes = 0
            self._probes_in_flight = 0
        logger.info("Circuit reset", breaker=self.config.name)

    def snapshot(self) -> dict:
        return {"state": self._state.value, **asdict(self._stats)}


billing_breaker = CircuitBreaker(CircuitBreakerConfig(name="billing"))
