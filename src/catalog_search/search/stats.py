"""Scoring math shared by the catalog indexes.

Nothing here knows about postings or products: callers pass in counts and
get back floats, which keeps the formulas easy to test in isolation.
"""

from __future__ import annotations

from dataclasses import dataclass
import math


@dataclass(frozen=True)
class FieldLengthStats:
    """Token total and document count for one indexed field."""

    field: str
    total_terms: int
    document_count: int

    @property
    def average_length(self) -> float:
        return self.total_terms / self.document_count if self.document_count else 0.0


def okapi_idf(doc_freq: int, total_docs: int) -> float:
    """Classic Okapi IDF, ``ln((N - df + 0.5) / (df + 0.5))``.

    Terms carried by more than half of the catalog get a negative weight, and
    in a one-product catalog every term does. 0.0 when either count is zero.
    """
    if doc_freq <= 0 or total_docs <= 0:
        return 0.0
    return math.log((total_docs - doc_freq + 0.5) / (doc_freq + 0.5))


def smoothed_idf(doc_freq: int, total_docs: int, *, floor: float = 1e-6) -> float:
    """Okapi IDF shifted by +1 and clamped at ``floor``.

    Ubiquitous terms end up with a tiny positive weight instead of cancelling
    the match, so a field index never loses a document that contains the term.
    """
    if total_docs <= 0:
        return 0.0
    df = min(max(doc_freq, 0), total_docs)
    odds = max((total_docs - df + 0.5) / (df + 0.5), floor)
    return max(1.0 + math.log(odds + floor), floor)


def bm25(tf: int, doc_length: int, avg_doc_length: float, *, k1: float = 1.2, b: float = 0.75) -> float:
    """BM25 saturation term (IDF not included).

    >>> round(bm25(1, 10, 10.0), 4)
    1.0
    """
    if tf <= 0 or avg_doc_length <= 0:
        return 0.0
    length_norm = 1 - b + b * (doc_length / avg_doc_length)
    return tf * (k1 + 1) / (tf + k1 * length_norm)
