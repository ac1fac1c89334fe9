"""Per-call correlation context shared by log records and spans.

Each engine call binds a small mapping (trace id, span id, engine name and
the normalized query) into a ``ContextVar`` so log lines emitted anywhere
below it can be joined back to the call that produced them.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING
from uuid import uuid4


if TYPE_CHECKING:
    from opentelemetry.trace import Span

trace_context: ContextVar[dict | None] = ContextVar("catalog_search_trace_context", default=None)


def new_trace_id() -> str:
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def get_trace_context() -> dict:
    """Return the bound context, creating fresh ids on first access."""
    ctx = trace_context.get()
    if not ctx or not ctx.get("trace_id"):
        ctx = {"trace_id": new_trace_id(), "span_id": new_span_id()}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **fields: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **fields})


def update_span_id(span_id: str, trace_id: str | None = None) -> None:
    """Point the bound context at ``span_id``; an existing trace id is kept."""
    ctx = {**(trace_context.get() or {}), "span_id": span_id}
    if not ctx.get("trace_id"):
        ctx["trace_id"] = trace_id or new_trace_id()
    trace_context.set(ctx)


def span_ids(span: Span) -> tuple[str, str]:
    """Hex-encoded ``(trace_id, span_id)`` of an OpenTelemetry span."""
    span_context = span.get_span_context()
    return format(span_context.trace_id, "032x"), format(span_context.span_id, "016x")


@contextmanager
def bind_call_context(operation: str, **fields: object) -> Iterator[dict]:
    """Bind correlation fields for the duration of one engine call.

    The trace id of an enclosing call is kept so nested calls share it; the
    previous context is restored on exit.
    """
    parent = trace_context.get() or {}
    ctx = {
        "trace_id": parent.get("trace_id") or new_trace_id(),
        "span_id": new_span_id(),
        "operation": operation,
        **{key: value for key, value in fields.items() if value is not None},
    }
    token = trace_context.set(ctx)
    try:
        yield ctx
    finally:
        trace_context.reset(token)
