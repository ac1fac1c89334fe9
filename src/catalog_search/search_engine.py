"""Catalog Search Engine - the single entry point for product search.

An engine is an explicitly owned object with a simple lifecycle:

1. Build it from a catalog snapshot (``SearchEngine(products)`` or
   ``SearchEngine.from_records(rows)``).
2. Keep it in sync with ``add_product`` / ``update_product`` /
   ``remove_product``, or swap the whole catalog with ``rebuild``.
3. Throw it away; nothing is persisted. Rebuild from the source of truth on
   restart.

All operations are synchronous and run to completion. Searches may run
concurrently with each other, but not with a mutation: hosts that share an
engine across threads need their own reader/writer lock, with ``rebuild``
taken exclusively.

Ranking pipeline (strategy chosen by ``SearchSettings.strategy``):

- ``bm25``: BM25 over name/description/category/brand, plus flat substring
  boosts per field, plus an edit-distance fallback against the product name.
- ``multi_field``: five field indexes merged by position and field weight
  (see ``catalog_search.search.multi_field_index``).

Both strategies then filter, sort and truncate the same way.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import logging
import math
import time
from typing import Any

from pydantic import ValidationError

from catalog_search.config import SearchSettings
from catalog_search.domain.model import Product
from catalog_search.domain.search import (
    Facets,
    SearchFilters,
    SearchMetrics,
    SearchResult,
    SearchSuggestion,
    SuggestionType,
)
from catalog_search.observability.context import bind_call_context
from catalog_search.observability.metrics import (
    INDEX_DOC_COUNT,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    SUGGESTION_REQUESTS,
    track_latency,
)
from catalog_search.observability.tracing import create_span
from catalog_search.search.bm25_index import BM25Index
from catalog_search.search.facets import build_facets
from catalog_search.search.filters import apply_filters, sort_results
from catalog_search.search.fuzzy import find_fuzzy_matches, fuzzy_threshold, name_distance
from catalog_search.search.highlight import build_highlights, highlight_text
from catalog_search.search.history import SearchHistory
from catalog_search.search.multi_field_index import MultiFieldIndex
from catalog_search.search.trie import PrefixTrie


logger = logging.getLogger(__name__)


_TYPE_PRECEDENCE: dict[SuggestionType, int] = {
    SuggestionType.CATEGORY: 0,
    SuggestionType.BRAND: 1,
    SuggestionType.TAG: 2,
    SuggestionType.PRODUCT: 3,
}


@dataclass
class _VocabularyEntry:
    type: SuggestionType
    count: int = 0


def validate_records(records: Iterable[Mapping[str, Any] | Product]) -> list[Product]:
    """Validate raw catalog rows, skipping (and logging) the ones that cannot be repaired."""
    products: list[Product] = []
    for position, record in enumerate(records):
        if isinstance(record, Product):
            products.append(record)
            continue
        try:
            products.append(Product.model_validate(record))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid product record #%d (id=%r): %d validation error(s)",
                position,
                record.get("id") if isinstance(record, Mapping) else None,
                exc.error_count(),
                extra={"errors": [error["loc"] for error in exc.errors()]},
            )
    return products


class SearchEngine:
    """Product search, autocomplete and query analytics over an in-memory catalog."""

    def __init__(
        self,
        products: Iterable[Product] = (),
        *,
        settings: SearchSettings | None = None,
        name: str = "default",
    ) -> None:
        self.settings = settings or SearchSettings()
        self.name = name
        self.history = SearchHistory(
            max_entries=self.settings.history_max_entries,
            trim_to=self.settings.history_trim_to,
            display_limit=self.settings.history_display_limit,
            popular_limit=self.settings.popular_display_limit,
        )
        self._products: dict[str, Product] = {}
        self._bm25: BM25Index | None = None
        self._multi_field: MultiFieldIndex | None = None
        if self.settings.strategy == "multi_field":
            self._multi_field = MultiFieldIndex(settings=self.settings, history=self.history)
        else:
            self._bm25 = BM25Index(k1=self.settings.k1, b=self.settings.b)
        self._trie = PrefixTrie(node_capacity=self.settings.trie_node_capacity)
        self._vocabulary: dict[str, _VocabularyEntry] = {}
        self.rebuild(products)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any] | Product],
        *,
        settings: SearchSettings | None = None,
        name: str = "default",
    ) -> SearchEngine:
        """Build an engine from raw catalog rows; invalid rows are skipped."""
        return cls(validate_records(records), settings=settings, name=name)

    # Catalog lifecycle ------------------------------------------------

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    @property
    def strategy(self) -> str:
        return self.settings.strategy

    def get_product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def products(self) -> list[Product]:
        return list(self._products.values())

    def rebuild(self, products: Iterable[Product]) -> None:
        """Replace the whole catalog. Callers must treat this as an exclusive operation."""
        started = time.perf_counter()
        with create_span("catalog_search.rebuild", attributes={"engine": self.name}) as span:
            self._products.clear()
            if self._bm25 is not None:
                self._bm25.clear()
            if self._multi_field is not None:
                self._multi_field.clear()
            for product in products:
                self._index(product)
            self._rebuild_trie()
            span.set_attribute("catalog.size", len(self._products))

        INDEX_DOC_COUNT.labels(engine=self.name).set(len(self._products))
        logger.info(
            "Indexed %d products (%s strategy) in %.1f ms",
            len(self._products),
            self.settings.strategy,
            (time.perf_counter() - started) * 1000,
        )

    def rebuild_from_records(self, records: Iterable[Mapping[str, Any] | Product]) -> None:
        self.rebuild(validate_records(records))

    def _index(self, product: Product) -> None:
        if product.id in self._products:
            self._unindex(product.id)
        self._products[product.id] = product
        if self._bm25 is not None:
            self._bm25.add(product.id, product.searchable_text())
        if self._multi_field is not None:
            self._multi_field.add_product(product)

    def _unindex(self, product_id: str) -> bool:
        if self._products.pop(product_id, None) is None:
            return False
        if self._bm25 is not None:
            self._bm25.remove(product_id)
        if self._multi_field is not None:
            self._multi_field.remove_product(product_id)
        return True

    def add_product(self, product: Product) -> None:
        """Add ``product``; an existing product with the same id is replaced."""
        replaced = product.id in self._products
        self._index(product)
        if replaced:
            self._rebuild_trie()
        else:
            self._add_to_trie(product)
        INDEX_DOC_COUNT.labels(engine=self.name).set(len(self._products))
        logger.debug("Added product %s", product.id)

    def update_product(self, product: Product) -> None:
        """Remove-then-add, so every index and statistic reflects the new version."""
        self._unindex(product.id)
        self._index(product)
        self._rebuild_trie()
        INDEX_DOC_COUNT.labels(engine=self.name).set(len(self._products))
        logger.debug("Updated product %s", product.id)

    def remove_product(self, product_id: str) -> bool:
        removed = self._unindex(product_id)
        if removed:
            self._rebuild_trie()
            INDEX_DOC_COUNT.labels(engine=self.name).set(len(self._products))
            logger.debug("Removed product %s", product_id)
        return removed

    # Search -----------------------------------------------------------

    def search(self, query: str, filters: SearchFilters | None = None) -> list[SearchResult]:
        """Rank products for ``query``.

        A blank query browses the whole catalog (relevance 1 for every
        product) and is not recorded in the history. A query that matches
        nothing returns ``[]``.
        """
        filters = filters or SearchFilters()
        normalized = query.strip() if query else ""
        strategy = self.settings.strategy

        with (
            bind_call_context("search", engine=self.name, strategy=strategy),
            create_span(
                "catalog_search.search",
                attributes={"engine": self.name, "strategy": strategy, "query.length": len(normalized)},
            ) as span,
            track_latency(SEARCH_LATENCY, strategy=strategy),
        ):
            if not normalized:
                results = self._browse(filters)
                outcome = "browse"
            elif self._multi_field is not None:
                results = self._multi_field.search(normalized, filters)
                outcome = "hit" if results else "miss"
            else:
                results = self._bm25_search(normalized, filters)
                outcome = "hit" if results else "miss"
            span.set_attribute("results.count", len(results))

        SEARCH_REQUESTS.labels(strategy=strategy, outcome=outcome).inc()
        logger.debug("Search %r (%s) returned %d results", normalized, strategy, len(results))
        return results

    def _limit(self, filters: SearchFilters) -> int:
        return filters.limit or self.settings.default_limit

    def _browse(self, filters: SearchFilters) -> list[SearchResult]:
        results = [SearchResult(product=product, relevance=1.0) for product in self._products.values()]
        return sort_results(apply_filters(results, filters), filters.sort_by)[: self._limit(filters)]

    def _bm25_search(self, query: str, filters: SearchFilters) -> list[SearchResult]:
        started = time.perf_counter()
        settings = self.settings
        base_scores = self._bm25.search(query) if self._bm25 is not None else {}
        query_lower = query.lower()
        fallback_threshold = fuzzy_threshold(
            len(query_lower), settings.search_fuzzy_ratio, minimum=settings.min_fuzzy_threshold
        )
        boosts = (
            ("name", settings.name_boost),
            ("description", settings.description_boost),
            ("category", settings.category_boost),
            ("brand", settings.brand_boost),
        )

        results: list[SearchResult] = []
        for product in self._products.values():
            score = base_scores.get(product.id, 0.0)
            matched_fields = ["main"] if score > 0 else []

            for field_name, boost in boosts:
                value = getattr(product, field_name) or ""
                if boost and query_lower in value.lower():
                    score += boost
                    matched_fields.append(field_name)

            if score <= 0:
                distance = name_distance(query_lower, product.name)
                if distance <= fallback_threshold:
                    score = max(0.0, settings.fuzzy_base_score - distance)
                    if score > 0:
                        matched_fields.append("fuzzy_name")

            if score > 0:
                results.append(
                    SearchResult(
                        product=product,
                        relevance=score,
                        matched_fields=matched_fields,
                        highlights=build_highlights(product, query),
                    )
                )

        ranked = sort_results(apply_filters(results, filters), filters.sort_by)[: self._limit(filters)]
        self.history.record(query, len(ranked), (time.perf_counter() - started) * 1000, filters.active())
        return ranked

    # Autocomplete -----------------------------------------------------

    def _product_vocabulary(self, product: Product) -> list[tuple[str, SuggestionType]]:
        min_word = self.settings.min_trie_word_length
        entries = [(product.name, SuggestionType.PRODUCT)]
        entries.extend(
            (word, SuggestionType.PRODUCT) for word in product.name.split() if len(word) >= min_word
        )
        if product.category:
            entries.append((product.category, SuggestionType.CATEGORY))
        if product.brand:
            entries.append((product.brand, SuggestionType.BRAND))
        entries.extend((tag, SuggestionType.TAG) for tag in product.tags)
        return entries

    def _add_to_trie(self, product: Product) -> None:
        carried: dict[str, SuggestionType] = {}
        for text, suggestion_type in self._product_vocabulary(product):
            self._trie.insert(text)
            key = text.lower()
            current = carried.get(key)
            if current is None or _TYPE_PRECEDENCE[suggestion_type] < _TYPE_PRECEDENCE[current]:
                carried[key] = suggestion_type
        # A text counts once per product, typed by its most specific role
        for key, suggestion_type in carried.items():
            entry = self._vocabulary.get(key)
            if entry is None:
                self._vocabulary[key] = _VocabularyEntry(type=suggestion_type, count=1)
                continue
            entry.count += 1
            if _TYPE_PRECEDENCE[suggestion_type] < _TYPE_PRECEDENCE[entry.type]:
                entry.type = suggestion_type

    def _rebuild_trie(self) -> None:
        """Rebuild autocomplete state from the catalog; runs only inside mutations."""
        trie = PrefixTrie(node_capacity=self.settings.trie_node_capacity)
        self._trie, self._vocabulary = trie, {}
        for product in self._products.values():
            self._add_to_trie(product)
        logger.debug("Rebuilt autocomplete trie: %d entries, %d nodes", len(trie), trie.node_count)

    def _suggestion(self, text: str) -> SearchSuggestion:
        entry = self._vocabulary.get(text.lower())
        if entry is None:
            return SearchSuggestion(text=text, type=SuggestionType.PRODUCT, count=1)
        return SearchSuggestion(text=text, type=entry.type, count=entry.count)

    def get_suggestions(self, query: str, limit: int | None = None) -> list[SearchSuggestion]:
        """Autocomplete ``query`` from the trie, topped up with fuzzy name matches.

        Queries shorter than ``min_suggestion_length`` return ``[]``. Results
        are de-duplicated case-insensitively and capped at ``max_suggestions``.
        """
        settings = self.settings
        prefix = query.strip() if query else ""
        if len(prefix) < settings.min_suggestion_length or not self._products:
            return []
        cap = settings.max_suggestions if limit is None else min(limit, settings.max_suggestions)
        if cap <= 0:
            return []

        with (
            bind_call_context("suggestions", engine=self.name),
            create_span("catalog_search.suggestions", attributes={"engine": self.name}) as span,
        ):
            seen: set[str] = set()
            texts: list[str] = []
            for text in self._trie.get_suggestions(prefix, settings.trie_suggestion_limit):
                if text.lower() not in seen:
                    seen.add(text.lower())
                    texts.append(text)
            source = "trie" if texts else "none"

            if len(texts) < settings.trie_suggestion_limit:
                threshold = fuzzy_threshold(
                    len(prefix), settings.suggestion_fuzzy_ratio, minimum=settings.min_fuzzy_threshold
                )
                names = [product.name for product in self._products.values()]
                for name, _distance in find_fuzzy_matches(prefix, names, threshold, include_exact=False):
                    if len(texts) >= settings.max_suggestions:
                        break
                    if name.lower() in seen:
                        continue
                    seen.add(name.lower())
                    texts.append(name)
                    source = "fuzzy" if source == "none" else "mixed"

            span.set_attribute("suggestions.count", min(len(texts), cap))

        SUGGESTION_REQUESTS.labels(source=source).inc()
        return [self._suggestion(text) for text in texts[:cap]]

    def get_did_you_mean(self, query: str) -> str | None:
        """Return the product name closest to ``query`` (positive distance within threshold)."""
        normalized = query.strip() if query else ""
        if not normalized or not self._products:
            return None

        threshold = fuzzy_threshold(
            len(normalized), self.settings.did_you_mean_ratio, minimum=self.settings.min_fuzzy_threshold
        )
        best_name: str | None = None
        best_distance = math.inf
        for product in self._products.values():
            distance = name_distance(normalized, product.name)
            if 0 < distance <= threshold and distance < best_distance:
                best_distance = distance
                best_name = product.name
        return best_name

    # History and analytics --------------------------------------------

    def get_search_history(self) -> list[str]:
        return self.history.recent_queries()

    def get_popular_searches(self) -> list[str]:
        return self.history.popular_queries()

    def get_search_metrics(self) -> list[SearchMetrics]:
        return self.history.entries()

    def clear_search_history(self) -> None:
        self.history.clear()

    def get_facets(self, results: Iterable[SearchResult] | None = None) -> Facets:
        """Facet counts for ``results``, or for the whole catalog when omitted."""
        if results is None:
            return build_facets(self._products.values())
        return build_facets(result.product for result in results)

    def highlight_text(self, text: str, query: str, *, style: str = "html") -> str:
        return highlight_text(text, query, style=style)
