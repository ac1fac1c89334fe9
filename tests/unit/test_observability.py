"""Unit tests for observability module."""

import logging

import orjson
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from prometheus_client import REGISTRY
import pytest

from catalog_search import SearchEngine
from catalog_search.observability import (
    SEARCH_LATENCY,
    JsonFormatter,
    bind_call_context,
    configure_logging,
    create_span,
    get_metrics,
    get_metrics_content_type,
    get_trace_context,
    init_tracing,
    set_trace_context,
    track_latency,
)
from catalog_search.observability.context import span_ids, trace_context
from catalog_search.observability.tracing import reset_tracer


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def span_exporter():
    exporter = InMemorySpanExporter()
    init_tracing("catalog-search-test", span_processors=[SimpleSpanProcessor(exporter)])
    yield exporter
    reset_tracer()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestJsonFormatter:
    """Tests for structured JSON logging."""

    @staticmethod
    def _record(msg: str = "Indexed %d products", args=(5,), **extra) -> logging.LogRecord:
        return logging.getLogger("catalog_search.search_engine").makeRecord(
            "catalog_search.search_engine", logging.INFO, __file__, 1, msg, args, None, extra=extra
        )

    def test_format_includes_trace_context(self):
        set_trace_context("a" * 32, "b" * 16)

        entry = orjson.loads(JsonFormatter().format(self._record()))

        assert entry["message"] == "Indexed 5 products"
        assert entry["level"] == "INFO"
        assert entry["trace_id"] == "a" * 32
        assert entry["span_id"] == "b" * 16
        assert entry["component"] == "search_engine"

    def test_extra_fields_are_included_and_redacted(self):
        entry = orjson.loads(JsonFormatter().format(self._record(product_count=5, api_key="s3cr3t")))

        assert entry["product_count"] == 5
        assert entry["api_key"] == "[REDACTED]"

    def test_non_json_values_are_serialized(self):
        entry = orjson.loads(JsonFormatter().format(self._record(errors={("name",)}, raw=b"bytes")))

        assert entry["errors"] == [["name"]]
        assert entry["raw"] == "bytes"

    def test_long_messages_are_truncated(self):
        record = self._record("x" * 5000, ())

        entry = orjson.loads(JsonFormatter().format(record))

        assert len(entry["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_call_context_fields_are_included(self):
        with bind_call_context("search", engine="storefront"):
            entry = orjson.loads(JsonFormatter().format(self._record()))

        assert entry["operation"] == "search"
        assert entry["engine"] == "storefront"


@pytest.mark.unit
class TestCallContext:
    def test_generates_ids_on_first_access(self):
        trace_context.set(None)

        ctx = get_trace_context()

        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16

    def test_nested_calls_share_trace_id_and_restore(self):
        set_trace_context("c" * 32, "d" * 16)

        with bind_call_context("search", engine="default", query=None) as outer:
            assert outer["trace_id"] == "c" * 32
            assert "query" not in outer
            with bind_call_context("suggestions") as inner:
                assert inner["trace_id"] == "c" * 32
                assert inner["span_id"] != outer["span_id"]
                assert get_trace_context()["operation"] == "suggestions"
            assert get_trace_context()["operation"] == "search"

        assert get_trace_context() == {"trace_id": "c" * 32, "span_id": "d" * 16}


@pytest.mark.unit
class TestTracing:
    def test_create_span_sets_attributes_and_span_id(self, span_exporter):
        with create_span("catalog_search.test", attributes={"catalog.size": 3}) as span:
            assert get_trace_context()["span_id"] == span_ids(span)[1]

        spans = span_exporter.get_finished_spans()
        assert [finished.name for finished in spans] == ["catalog_search.test"]
        assert spans[0].attributes["catalog.size"] == 3

    def test_create_span_records_errors(self, span_exporter):
        with pytest.raises(RuntimeError), create_span("catalog_search.failing"):
            raise RuntimeError("boom")

        span = span_exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert any(event.name == "exception" for event in span.events)

    def test_engine_operations_are_traced(self, span_exporter, catalog):
        engine = SearchEngine(catalog, name="traced")
        engine.search("cable")
        engine.get_suggestions("cab")

        spans = {span.name: span for span in span_exporter.get_finished_spans()}
        assert spans["catalog_search.rebuild"].attributes["catalog.size"] == 5
        assert spans["catalog_search.search"].attributes["strategy"] == "bm25"
        assert spans["catalog_search.search"].attributes["results.count"] == 1
        assert "catalog_search.suggestions" in spans


@pytest.mark.unit
class TestMetrics:
    def test_search_requests_are_counted_by_outcome(self, catalog):
        engine = SearchEngine(catalog)
        hit_labels = {"strategy": "bm25", "outcome": "hit"}
        miss_labels = {"strategy": "bm25", "outcome": "miss"}
        hits = _sample("catalog_search_requests_total", hit_labels)
        misses = _sample("catalog_search_requests_total", miss_labels)

        engine.search("cable")
        engine.search("zzzz qqqq")

        assert _sample("catalog_search_requests_total", hit_labels) == hits + 1
        assert _sample("catalog_search_requests_total", miss_labels) == misses + 1

    def test_index_size_gauge(self, catalog):
        engine = SearchEngine(catalog, name="gauge-test")
        assert _sample("catalog_search_index_document_count", {"engine": "gauge-test"}) == 5

        engine.remove_product("1")
        assert _sample("catalog_search_index_document_count", {"engine": "gauge-test"}) == 4

    def test_suggestion_sources(self, catalog):
        engine = SearchEngine(catalog)
        before = _sample("catalog_search_suggestion_requests_total", {"source": "trie"})

        engine.get_suggestions("iph")

        assert _sample("catalog_search_suggestion_requests_total", {"source": "trie"}) == before + 1

    def test_track_latency(self):
        labels = {"strategy": "unit-test"}
        before = _sample("catalog_search_latency_seconds_count", labels)

        with track_latency(SEARCH_LATENCY, **labels):
            pass

        assert _sample("catalog_search_latency_seconds_count", labels) == before + 1

    def test_exposition(self):
        assert b"catalog_search_requests_total" in get_metrics()
        assert get_metrics_content_type().startswith("text/plain")


@pytest.mark.unit
def test_configure_logging_installs_json_handler(restore_root_logger):
    configure_logging("debug", json_output=True, logger_levels={"catalog_search.search": "warning"})

    assert restore_root_logger.level == logging.DEBUG
    assert isinstance(restore_root_logger.handlers[-1].formatter, JsonFormatter)
    assert logging.getLogger("catalog_search.search").level == logging.WARNING
    logging.getLogger("catalog_search.search").setLevel(logging.NOTSET)


@pytest.mark.unit
def test_configure_logging_plain_text(restore_root_logger):
    configure_logging("warning", json_output=False)

    assert restore_root_logger.level == logging.WARNING
    assert not isinstance(restore_root_logger.handlers[-1].formatter, JsonFormatter)


@pytest.mark.unit
def test_configure_logging_defaults_come_from_settings(restore_root_logger, monkeypatch):
    monkeypatch.setenv("CATALOG_SEARCH_LOG_LEVEL", "error")
    monkeypatch.setenv("CATALOG_SEARCH_JSON_LOGS", "false")

    configure_logging()

    assert restore_root_logger.level == logging.ERROR
    assert not isinstance(restore_root_logger.handlers[-1].formatter, JsonFormatter)
