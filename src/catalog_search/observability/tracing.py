"""OpenTelemetry spans around engine calls.

The engine never configures exporters itself. Hosts call ``init_tracing``
with their own span processors; without it, spans go to whatever global
provider is installed (the no-op one by default).
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from catalog_search.observability.context import span_ids, update_span_id


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

_active: list[Tracer] = []


def init_tracing(
    service_name: str = "catalog-search",
    resource_attributes: dict[str, str] | None = None,
    span_processors: Iterable[SpanProcessor] | None = None,
) -> TracerProvider:
    """Build a provider for ``service_name`` and make its tracer the engine's tracer."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    for processor in span_processors or ():
        provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)
    _active[:] = [provider.get_tracer(__name__)]
    logger.debug("Tracing enabled for %s", service_name)
    return provider


def get_tracer() -> Tracer:
    if not _active:
        _active.append(trace.get_tracer(__name__))
    return _active[0]


def reset_tracer() -> None:
    """Forget the cached tracer; the next span uses the global provider."""
    _active.clear()


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Run the block inside a span whose id is also bound for log correlation.

    An exception leaving the block is recorded on the span, which is marked
    ERROR, and then re-raised.
    """
    with get_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        if span.get_span_context().is_valid:
            trace_id, span_id = span_ids(span)
            update_span_id(span_id, trace_id)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise
