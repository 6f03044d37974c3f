"""OpenTelemetry tracing support for FarmBid.

Tracing is disabled by default. When disabled, all tracing functions are
no-ops, so call sites never need to check whether tracing is configured.

Usage:
    from farmbid.infrastructure.observability import configure_tracing, trace_span

    # At startup (e.g., FastAPI lifespan or CLI main)
    configure_tracing(service_name="farmbid-api")

    # In code
    with trace_span("place_bid", auction_id=auction_id):
        # ... operation ...

    # Or as a decorator
    @traced("platform_stats")
    def platform_stats(self, now: datetime) -> PlatformStatsDTO:
        ...
"""

from __future__ import annotations

import functools
import inspect
import os
from contextlib import AbstractContextManager
from contextvars import ContextVar
from typing import Any, Callable, TypeVar

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.trace import SpanKind, Status, StatusCode

from .logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# ---------------------------------------------------------------------------
# Tracing state
# ---------------------------------------------------------------------------

_tracer: trace.Tracer | None = None
_tracing_enabled: bool = False

# Context variable for trace/span IDs (used for log correlation)
_trace_context: ContextVar[dict[str, str]] = ContextVar(
    "trace_context", default={}
)

_KIND_MAP = {
    "internal": SpanKind.INTERNAL,
    "server": SpanKind.SERVER,
    "client": SpanKind.CLIENT,
    "producer": SpanKind.PRODUCER,
    "consumer": SpanKind.CONSUMER,
}


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled."""
    return _tracing_enabled


def get_trace_context() -> dict[str, str]:
    """Get current trace context for log correlation."""
    return _trace_context.get()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def configure_tracing(
    *,
    service_name: str = "farmbid",
    enable: bool = True,
    sample_rate: float = 1.0,
    span_processor: SpanProcessor | None = None,
) -> bool:
    """Configure OpenTelemetry tracing.

    Args:
        service_name: Name of this service in traces.
        enable: Whether to enable tracing. If False, all trace calls are no-ops.
        sample_rate: Fraction of traces to sample (0.0 to 1.0).
        span_processor: Processor receiving finished spans. When omitted, spans
            are printed to the console if ``OTEL_TRACES_CONSOLE=true``.

    Returns:
        True if tracing was configured, False if it is disabled.
    """
    global _tracer, _tracing_enabled

    if not enable:
        _tracer = None
        _tracing_enabled = False
        logger.info("Tracing disabled by configuration")
        return False

    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(sample_rate))

    if span_processor is not None:
        provider.add_span_processor(span_processor)
    elif os.environ.get("OTEL_TRACES_CONSOLE", "").lower() == "true":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console trace exporter enabled")

    _tracer = provider.get_tracer(service_name)
    _tracing_enabled = True
    logger.info("Tracing enabled for service '%s'", service_name)
    return True


# ---------------------------------------------------------------------------
# Tracing helpers
# ---------------------------------------------------------------------------


class trace_span(AbstractContextManager):
    """Open a span for the duration of a ``with`` block.

    Yields the span, or None when tracing is disabled. Attribute values are
    stringified; None values are skipped.
    """

    def __init__(self, name: str, *, kind: str = "internal", **attributes: Any):
        self.name = name
        self.kind = kind
        self.attributes = attributes
        self.span = None
        self.span_ctx = None
        self.ctx_token = None

    def __enter__(self):
        if not _tracing_enabled or _tracer is None:
            return None
        self.span_ctx = _tracer.start_as_current_span(
            self.name, kind=_KIND_MAP.get(self.kind, SpanKind.INTERNAL)
        )
        self.span = self.span_ctx.__enter__()
        for key, value in self.attributes.items():
            if value is not None:
                self.span.set_attribute(key, str(value))
        ctx = self.span.get_span_context()
        if ctx.is_valid:
            self.ctx_token = _trace_context.set({
                "trace_id": format(ctx.trace_id, "032x"),
                "span_id": format(ctx.span_id, "016x"),
            })
        return self.span

    def __exit__(self, exc_type, exc_value, traceback):
        if self.ctx_token is not None:
            _trace_context.reset(self.ctx_token)
        if self.span_ctx is not None:
            self.span_ctx.__exit__(exc_type, exc_value, traceback)
        return False


def traced(
    name: str | None = None,
    *,
    kind: str = "internal",
) -> Callable[[F], F]:
    """Decorator to trace a function (sync or async).

    Args:
        name: Span name (defaults to function name).
        kind: Span kind.
    """
    def decorator(func: F) -> F:
        span_name = name or func.__name__

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with trace_span(span_name, kind=kind):
                return func(*args, **kwargs)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with trace_span(span_name, kind=kind):
                return await func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator


def set_span_attribute(key: str, value: Any) -> None:
    """Set an attribute on the current span."""
    if not _tracing_enabled:
        return
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, str(value))


def add_span_event(name: str, **attributes: Any) -> None:
    """Add a timestamped event to the current span."""
    if not _tracing_enabled:
        return
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes={k: str(v) for k, v in attributes.items()})


def record_exception(exception: BaseException) -> None:
    """Record an exception on the current span and mark it as failed."""
    if not _tracing_enabled:
        return
    span = trace.get_current_span()
    if span.is_recording():
        span.record_exception(exception)
        span.set_status(Status(StatusCode.ERROR))
