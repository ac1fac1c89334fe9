"""Five parallel field indexes merged into one weighted relevance score.

Each field index ranks its own candidates; the merge only looks at a
candidate's *position* in each list, never at raw BM25 values, so fields with
very different length distributions stay comparable.

    base      = (n - p) / n                       position p in a list of n
    source    = base * field_weight
    relevance = mean(sources) * (1 + min(len(sources) / 5, 1))

A product found by several fields therefore earns up to twice the score of a
single-field hit with the same positional scores.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable
import logging
import time

from catalog_search.config import FIELD_NAMES, SearchSettings
from catalog_search.domain.model import Product
from catalog_search.domain.search import SearchFilters, SearchResult
from catalog_search.search.analyzers import tokenize
from catalog_search.search.bm25_index import BM25Index
from catalog_search.search.filters import apply_filters, sort_results
from catalog_search.search.highlight import build_highlights
from catalog_search.search.history import SearchHistory
from catalog_search.search.stats import bm25, smoothed_idf


logger = logging.getLogger(__name__)


FIELD_EXTRACTORS: dict[str, Callable[[Product], str]] = {
    "main": Product.full_text,
    "name": lambda product: product.name,
    "description": lambda product: product.description,
    "specs": Product.specification_text,
    "tags": lambda product: " ".join(product.tags),
}


class FieldIndex(BM25Index):
    """BM25 index for one field that returns an ordered candidate list.

    Unlike ``BM25Index.search`` it never drops a matching document: IDF is
    smoothed to stay positive, and a query token also matches index terms it
    is a prefix of (discounted once) or an infix of (discounted twice), so
    partially typed words still find their products.
    """

    def __init__(self, field_name: str, *, k1: float = 1.2, b: float = 0.75, prefix_discount: float = 0.8) -> None:
        super().__init__(k1=k1, b=b, field_name=field_name)
        self.prefix_discount = prefix_discount

    def idf(self, term: str) -> float:
        return smoothed_idf(self.doc_frequency(term), self.doc_count)

    def _expand(self, token: str) -> list[tuple[str, float]]:
        expansions: list[tuple[str, float]] = []
        infix_discount = self.prefix_discount * self.prefix_discount
        for term in self.vocabulary():
            if term == token:
                expansions.append((term, 1.0))
            elif term.startswith(token):
                expansions.append((term, self.prefix_discount))
            elif token in term:
                expansions.append((term, infix_discount))
        return expansions

    def candidates(self, query_tokens: Iterable[str], limit: int) -> list[str]:
        """Return up to ``limit`` matching doc ids, best first."""
        if limit <= 0 or not self.doc_count:
            return []
        avg_length = self.avg_doc_length
        if avg_length <= 0:
            return []

        scores: dict[str, float] = defaultdict(float)
        for token in dict.fromkeys(query_tokens):
            best_for_token: dict[str, float] = {}
            for term, discount in self._expand(token):
                idf = self.idf(term)
                for doc_id in self._postings.get(term, {}):
                    weight = bm25(
                        self.term_frequency(doc_id, term),
                        self.doc_length(doc_id),
                        avg_length,
                        k1=self.k1,
                        b=self.b,
                    )
                    contribution = idf * weight * discount
                    if contribution > best_for_token.get(doc_id, 0.0):
                        best_for_token[doc_id] = contribution
            for doc_id, contribution in best_for_token.items():
                scores[doc_id] += contribution

        order = {doc_id: position for position, doc_id in enumerate(self.doc_ids())}
        ranked = sorted(scores, key=lambda doc_id: (-scores[doc_id], order[doc_id]))
        return ranked[:limit]


class MultiFieldIndex:
    """Field-weighted product index: main, name, description, specs and tags."""

    def __init__(
        self,
        products: Iterable[Product] = (),
        *,
        settings: SearchSettings | None = None,
        history: SearchHistory | None = None,
    ) -> None:
        self.settings = settings or SearchSettings()
        self.history = history
        self._documents: dict[str, Product] = {}
        self._fields: dict[str, FieldIndex] = {
            name: FieldIndex(
                name,
                k1=self.settings.k1,
                b=self.settings.b,
                prefix_discount=self.settings.prefix_match_discount,
            )
            for name in FIELD_NAMES
        }
        for product in products:
            self.add_product(product)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._documents

    def field_index(self, field_name: str) -> FieldIndex:
        return self._fields[field_name]

    def get_product(self, product_id: str) -> Product | None:
        return self._documents.get(product_id)

    def products(self) -> list[Product]:
        return list(self._documents.values())

    def add_product(self, product: Product) -> None:
        if product.id in self._documents:
            self.remove_product(product.id)
        self._documents[product.id] = product
        for field_name, extract in FIELD_EXTRACTORS.items():
            text = extract(product)
            if text:
                self._fields[field_name].add(product.id, text)

    def remove_product(self, product_id: str) -> bool:
        if self._documents.pop(product_id, None) is None:
            return False
        for index in self._fields.values():
            index.remove(product_id)
        return True

    def update_product(self, product: Product) -> None:
        self.remove_product(product.id)
        self.add_product(product)

    def clear(self) -> None:
        self._documents.clear()
        for index in self._fields.values():
            index.clear()

    def field_candidates(self, query: str, limit: int) -> dict[str, list[str]]:
        """Query every field index independently."""
        tokens = tokenize(query)
        if not tokens:
            return {name: [] for name in FIELD_NAMES}
        limits = {**self.settings.field_candidate_limits, "main": limit}
        return {
            name: index.candidates(tokens, limits.get(name, limit))
            for name, index in self._fields.items()
        }

    def source_score(self, field_name: str, position: int, total: int) -> float:
        if total <= 0:
            return 0.0
        return (total - position) / total * self.settings.field_weight(field_name)

    def combined_score(self, scores: list[float]) -> float:
        if not scores:
            return 0.0
        average = sum(scores) / len(scores)
        boost = min(len(scores) / self.settings.multi_field_boost_sources, 1.0)
        return average * (1 + boost)

    def search(self, query: str, filters: SearchFilters | None = None) -> list[SearchResult]:
        """Rank products for ``query`` across all fields.

        Records the query in ``history`` when one was supplied. Blank queries
        return ``[]`` and are not recorded.
        """
        started = time.perf_counter()
        normalized = query.strip()
        if not normalized:
            return []

        filters = filters or SearchFilters()
        limit = filters.limit or self.settings.default_limit

        per_source: dict[str, list[float]] = defaultdict(list)
        matched: dict[str, list[str]] = defaultdict(list)
        for field_name, doc_ids in self.field_candidates(normalized, limit).items():
            total = len(doc_ids)
            for position, doc_id in enumerate(doc_ids):
                per_source[doc_id].append(self.source_score(field_name, position, total))
                matched[doc_id].append(field_name)

        results: list[SearchResult] = []
        for doc_id, scores in per_source.items():
            product = self._documents.get(doc_id)
            if product is None:
                continue
            results.append(
                SearchResult(
                    product=product,
                    relevance=self.combined_score(scores),
                    matched_fields=list(dict.fromkeys(matched[doc_id])),
                    highlights=build_highlights(product, normalized),
                )
            )

        ranked = sort_results(apply_filters(results, filters), filters.sort_by)[:limit]

        elapsed_ms = (time.perf_counter() - started) * 1000
        if self.history is not None:
            self.history.record(normalized, len(ranked), elapsed_ms, filters.active())
        logger.debug("Multi-field search %r: %d candidates, %d results", normalized, len(results), len(ranked))
        return ranked
