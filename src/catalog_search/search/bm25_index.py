"""Inverted index with Okapi BM25 scoring over a single text field."""

from __future__ import annotations

from collections import Counter, defaultdict
import logging

from catalog_search.search.analyzers import tokenize
from catalog_search.search.stats import FieldLengthStats, bm25, okapi_idf


logger = logging.getLogger(__name__)


class BM25Index:
    """Term -> {doc_id -> tf} postings plus the statistics BM25 needs.

    Statistics are maintained incrementally: every ``add``/``remove`` updates
    document frequencies and the running token total, so ``avg_doc_length`` is
    always ``total_tokens / doc_count`` for the current corpus.

    Re-adding an existing ``doc_id`` replaces the previous document.
    """

    def __init__(self, *, k1: float = 1.2, b: float = 0.75, field_name: str = "main") -> None:
        self.k1 = k1
        self.b = b
        self.field_name = field_name
        self._postings: dict[str, dict[str, int]] = defaultdict(dict)
        self._doc_terms: dict[str, Counter[str]] = {}
        self._doc_lengths: dict[str, int] = {}
        self._total_tokens = 0

    def __len__(self) -> int:
        return len(self._doc_lengths)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._doc_lengths

    @property
    def doc_count(self) -> int:
        return len(self._doc_lengths)

    @property
    def avg_doc_length(self) -> float:
        return self.length_stats().average_length

    def length_stats(self) -> FieldLengthStats:
        return FieldLengthStats(
            field=self.field_name,
            total_terms=self._total_tokens,
            document_count=len(self._doc_lengths),
        )

    def doc_frequency(self, term: str) -> int:
        postings = self._postings.get(term)
        return len(postings) if postings else 0

    def term_frequency(self, doc_id: str, term: str) -> int:
        terms = self._doc_terms.get(doc_id)
        return terms.get(term, 0) if terms else 0

    def doc_length(self, doc_id: str) -> int:
        return self._doc_lengths.get(doc_id, 0)

    def vocabulary(self) -> list[str]:
        return list(self._postings)

    def doc_ids(self) -> list[str]:
        return list(self._doc_lengths)

    def add(self, doc_id: str, text: str) -> None:
        """Index ``text`` under ``doc_id``, replacing any previous version."""
        if doc_id in self._doc_lengths:
            self.remove(doc_id)

        tokens = tokenize(text)
        frequencies = Counter(tokens)
        self._doc_terms[doc_id] = frequencies
        self._doc_lengths[doc_id] = len(tokens)
        self._total_tokens += len(tokens)
        for term, tf in frequencies.items():
            self._postings[term][doc_id] = tf

    def remove(self, doc_id: str) -> bool:
        """Drop ``doc_id`` from the index. Returns False when it was not indexed."""
        frequencies = self._doc_terms.pop(doc_id, None)
        if frequencies is None:
            return False
        self._total_tokens -= self._doc_lengths.pop(doc_id, 0)
        for term in frequencies:
            postings = self._postings.get(term)
            if postings is None:
                continue
            postings.pop(doc_id, None)
            if not postings:
                del self._postings[term]
        return True

    def clear(self) -> None:
        self._postings.clear()
        self._doc_terms.clear()
        self._doc_lengths.clear()
        self._total_tokens = 0

    def idf(self, term: str) -> float:
        return okapi_idf(self.doc_frequency(term), self.doc_count)

    def search(self, query: str) -> dict[str, float]:
        """Return ``{doc_id: score}`` for documents with a positive BM25 score.

        Documents that never accumulate a positive score are omitted rather
        than returned with 0. An empty corpus or a query with no tokens
        yields ``{}``.
        """
        query_tokens = tokenize(query)
        if not query_tokens or not self._doc_lengths:
            return {}

        avg_length = self.avg_doc_length
        if avg_length <= 0:
            return {}

        idf_cache: dict[str, float] = {}
        scores: dict[str, float] = {}
        # Document order is insertion order, which keeps score maps deterministic.
        for doc_id, frequencies in self._doc_terms.items():
            doc_length = self._doc_lengths[doc_id]
            score = 0.0
            for token in query_tokens:
                tf = frequencies.get(token, 0)
                if tf <= 0:
                    continue
                if token not in idf_cache:
                    idf_cache[token] = self.idf(token)
                score += idf_cache[token] * bm25(tf, doc_length, avg_length, k1=self.k1, b=self.b)
            if score > 0:
                scores[doc_id] = score

        logger.debug("BM25 %s: %d/%d documents scored for %r", self.field_name, len(scores), self.doc_count, query)
        return scores
