"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from catalog_search.observability.context import (
    bind_call_context,
    get_trace_context,
    set_trace_context,
    trace_context,
)
from catalog_search.observability.logging import JsonFormatter, configure_logging
from catalog_search.observability.metrics import (
    INDEX_DOC_COUNT,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    SUGGESTION_REQUESTS,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from catalog_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_DOC_COUNT",
    "SEARCH_LATENCY",
    "SEARCH_REQUESTS",
    "SUGGESTION_REQUESTS",
    "JsonFormatter",
    "bind_call_context",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
