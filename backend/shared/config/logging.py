"""
Centralized structured logging for the backend.
Uses Python's standard logging with JSON formatting for production.

Log records carry the request correlation ID and, when a span is active,
the OpenTelemetry trace ID so logs and traces can be joined.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


def _correlation(record: logging.LogRecord) -> dict[str, str]:
    """Request and trace ids attached by the handler filters, when present."""
    ids = {}
    request_id = getattr(record, "request_id", None)
    if request_id and request_id != "-":
        ids["request_id"] = request_id
    trace_id = getattr(record, "trace_id", None)
    if trace_id:
        ids["trace_id"] = trace_id
    return ids


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shipping in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **_correlation(record),
        }
        context = getattr(record, "extra_data", None)
        if context:
            entry["ctx"] = context
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["at"] = f"{record.pathname}:{record.lineno}"
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for local runs."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        request_id = _correlation(record).get("request_id")
        tag = f"{self.DIM}[{request_id[:8]}]{self.RESET} " if request_id else ""

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {tag}{record.name}: {record.getMessage()}"

        context = getattr(record, "extra_data", None)
        if context:
            line += " (" + ", ".join(f"{key}={value}" for key, value in context.items()) + ")"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """
    Logger that accepts keyword context on every level method:

        logger.info("Session created", session_id=12, table_id=3)

    Keywords other than the ones `logging` itself understands end up in
    `record.extra_data`.
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **context: Any,
    ) -> None:
        extra = dict(extra or {})
        extra["extra_data"] = context or None
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Configure logging for the application.
    Call this once at application startup.
    """
    # Import here to avoid circular imports
    from shared.infrastructure.correlation import CorrelationIdFilter
    from shared.infrastructure.telemetry import TraceIdFilter

    log_level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(TraceIdFilter())

    if settings.is_production:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = ConsoleFormatter()

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Order placed", order_id=123, session_id=45)
        logger.error("Failed to confirm payment", order_id=123, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


# Pre-configured loggers for common modules
rest_api_logger = get_logger("rest_api")
scan_logger = get_logger("rest_api.scan")
sessions_logger = get_logger("rest_api.sessions")
orders_logger = get_logger("rest_api.orders")
payments_logger = get_logger("rest_api.payments")
