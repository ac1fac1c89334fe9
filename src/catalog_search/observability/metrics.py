"""Search metrics, recorded in Prometheus and mirrored to OpenTelemetry meters.

Prometheus holds the authoritative values (``get_metrics`` renders them);
the OpenTelemetry instruments are created lazily on first use so a host that
installs its own ``MeterProvider`` through ``init_metrics`` sees the same
signals.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
import time
from typing import Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


_LATENCY_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25)

_meter_state: dict[str, Any] = {"provider": None, "meter": None}


def init_metrics(
    service_name: str = "catalog-search",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: Sequence[MetricReader] = (),
) -> MeterProvider:
    """Install the OpenTelemetry meter provider once and return it."""
    if isinstance(_meter_state["provider"], MeterProvider):
        return _meter_state["provider"]

    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = MeterProvider(resource=resource, metric_readers=list(metric_readers))
    otel_metrics.set_meter_provider(provider)
    _meter_state["provider"] = provider
    _meter_state["meter"] = otel_metrics.get_meter(__name__)
    return provider


def _meter():
    if _meter_state["meter"] is None:
        init_metrics()
    return _meter_state["meter"]


class _Labelled:
    """A bridged metric with its label values bound."""

    __slots__ = ("_metric", "_labels")

    def __init__(self, metric: _BridgedMetric, labels: dict[str, str]) -> None:
        self._metric = metric
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._metric.record(self._labels, amount)

    def observe(self, value: float) -> None:
        self._metric.record(self._labels, value)

    def set(self, value: float) -> None:
        self._metric.record(self._labels, value)


class _BridgedMetric:
    """One signal with a Prometheus collector and a lazily created OTel instrument."""

    def __init__(self, name: str, documentation: str, labelnames: Sequence[str]) -> None:
        self.name = name
        self.documentation = documentation
        self.labelnames = tuple(labelnames)
        self.prometheus = self._create_collector()
        self._instrument = None

    def labels(self, **labels: str) -> _Labelled:
        return _Labelled(self, labels)

    @property
    def instrument(self):
        if self._instrument is None:
            self._instrument = self._create_instrument(_meter())
        return self._instrument

    def _create_collector(self):  # pragma: no cover - overridden
        raise NotImplementedError

    def _create_instrument(self, meter):  # pragma: no cover - overridden
        raise NotImplementedError

    def record(self, labels: dict[str, str], value: float) -> None:  # pragma: no cover - overridden
        raise NotImplementedError


class BridgedCounter(_BridgedMetric):
    def _create_collector(self) -> Counter:
        return Counter(self.name, self.documentation, self.labelnames)

    def _create_instrument(self, meter):
        return meter.create_counter(self.name, description=self.documentation)

    def record(self, labels: dict[str, str], value: float) -> None:
        self.prometheus.labels(**labels).inc(value)
        self.instrument.add(value, labels)


class BridgedHistogram(_BridgedMetric):
    def _create_collector(self) -> Histogram:
        return Histogram(self.name, self.documentation, self.labelnames, buckets=_LATENCY_BUCKETS)

    def _create_instrument(self, meter):
        return meter.create_histogram(self.name, unit="s", description=self.documentation)

    def record(self, labels: dict[str, str], value: float) -> None:
        self.prometheus.labels(**labels).observe(value)
        self.instrument.record(value, labels)


class BridgedGauge(_BridgedMetric):
    """Absolute values in Prometheus, deltas on an OTel up-down counter."""

    def __init__(self, name: str, documentation: str, labelnames: Sequence[str]) -> None:
        super().__init__(name, documentation, labelnames)
        self._current: dict[tuple[tuple[str, str], ...], float] = {}

    def _create_collector(self) -> Gauge:
        return Gauge(self.name, self.documentation, self.labelnames)

    def _create_instrument(self, meter):
        return meter.create_up_down_counter(self.name, description=self.documentation)

    def record(self, labels: dict[str, str], value: float) -> None:
        self.prometheus.labels(**labels).set(value)
        key = tuple(sorted(labels.items()))
        delta = value - self._current.get(key, 0.0)
        self._current[key] = value
        if delta:
            self.instrument.add(delta, labels)


SEARCH_LATENCY = BridgedHistogram(
    "catalog_search_latency_seconds",
    "Time spent answering a search call",
    ["strategy"],
)

SEARCH_REQUESTS = BridgedCounter(
    "catalog_search_requests_total",
    "Search calls by strategy and outcome (hit, miss, browse)",
    ["strategy", "outcome"],
)

SUGGESTION_REQUESTS = BridgedCounter(
    "catalog_search_suggestion_requests_total",
    "Autocomplete calls by where the suggestions came from",
    ["source"],
)

INDEX_DOC_COUNT = BridgedGauge(
    "catalog_search_index_document_count",
    "Products currently indexed",
    ["engine"],
)


@contextmanager
def track_latency(histogram: BridgedHistogram, **labels: str) -> Iterator[None]:
    """Observe the wall-clock duration of the enclosed block, errors included."""
    started = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - started)


def get_metrics() -> bytes:
    """Prometheus text exposition of the default registry."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
