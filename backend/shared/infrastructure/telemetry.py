"""
OpenTelemetry instrumentation.

Decision steps inside the core operations (session reused or created, a
provided session rejected, an order item skipped, the colors predicted at scan
time) are recorded as span events instead of being returned to callers.
Every event is mirrored to the debug log so it is visible without a collector.

Usage:
    from shared.infrastructure.telemetry import traced, trace_event

    with traced("session.ensure", table_id=table.id):
        ...
        trace_event("session.reused", session_id=session.id)
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from shared.config.logging import get_logger
from shared.config.settings import settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = get_logger(__name__)

_tracer = trace.get_tracer("tableside")

AttributeValue = str | bool | int | float


def _attributes(values: dict[str, Any]) -> dict[str, AttributeValue]:
    """Span attributes only accept primitives; None is dropped."""
    attrs: dict[str, AttributeValue] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            attrs[key] = value
        else:
            attrs[key] = str(value)
    return attrs


@contextmanager
def traced(name: str, **attributes: Any) -> Generator[Span, None, None]:
    """Open a span around a core operation. Exceptions mark the span as failed."""
    with _tracer.start_as_current_span(name, attributes=_attributes(attributes)) as span:
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            raise


def trace_event(name: str, **attributes: Any) -> None:
    """Record a decision step on the current span and in the debug log."""
    trace.get_current_span().add_event(name, attributes=_attributes(attributes))
    logger.debug(name, **attributes)


def get_current_trace_id() -> str | None:
    """Get current trace ID for log correlation."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        return format(context.trace_id, "032x")
    return None


class TraceIdFilter(logging.Filter):
    """Logging filter that adds the active trace_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_current_trace_id()
        return True


def setup_telemetry(app: "FastAPI | None" = None) -> bool:
    """
    Install the SDK tracer provider with an OTLP/HTTP exporter.

    Disabled unless OTEL_ENABLED is set; without a provider the tracer is a
    no-op and span events only reach the debug log. Returns True when tracing
    was enabled.
    """
    if not settings.otel_enabled:
        logger.info("Telemetry disabled (set OTEL_ENABLED=true to enable)")
        return False

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    resource = Resource.create({
        SERVICE_NAME: settings.otel_service_name,
        "deployment.environment": settings.environment,
    })
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint))
    )
    trace.set_tracer_provider(provider)
    logger.info("OTLP exporter configured", endpoint=settings.otel_exporter_endpoint)

    if app is not None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls="api/health,docs,openapi.json")
        logger.info("FastAPI instrumented")

    from shared.infrastructure.db import engine

    SQLAlchemyInstrumentor().instrument(engine=engine)
    logger.info("SQLAlchemy instrumented")
    return True


def shutdown_telemetry() -> None:
    """Flush pending spans on shutdown."""
    provider = trace.get_tracer_provider()
    shutdown = getattr(provider, "shutdown", None)
    if shutdown is not None:
        shutdown()
