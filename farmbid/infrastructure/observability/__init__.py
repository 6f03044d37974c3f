"""Observability and logging facades."""

from .logging import (
    configure_logging,
    get_log_context,
    get_logger,
    log_context,
    log_exception,
)
from .metrics import (
    Timer,
    format_prometheus,
    get_metrics_summary,
    get_registry,
    increment_counter,
    observe_histogram,
    record_api_request,
    record_bid,
    record_notification,
    record_purchase,
    record_settlement,
    record_storage_retry,
)
from .tracing import (
    add_span_event,
    configure_tracing,
    get_trace_context,
    is_tracing_enabled,
    record_exception,
    set_span_attribute,
    trace_span,
    traced,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_log_context",
    "get_logger",
    "log_context",
    "log_exception",
    # Metrics
    "Timer",
    "format_prometheus",
    "get_metrics_summary",
    "get_registry",
    "increment_counter",
    "observe_histogram",
    "record_api_request",
    "record_bid",
    "record_notification",
    "record_purchase",
    "record_settlement",
    "record_storage_retry",
    # Tracing
    "add_span_event",
    "configure_tracing",
    "get_trace_context",
    "is_tracing_enabled",
    "record_exception",
    "set_span_attribute",
    "trace_span",
    "traced",
]
