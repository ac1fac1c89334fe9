"""Fuzzy matching for typo-tolerant product search.

This module provides edit distance calculation and fuzzy name matching
for suggestions, "did you mean" hints, and the zero-score search fallback.

Thresholds are length-proportional: ``max(2, floor(len(query) * ratio))``.
The ratio depends on the caller (0.3 for suggestions, 0.4 for the search
fallback, 0.5 for did-you-mean) and lives in ``SearchSettings``.
"""

from __future__ import annotations

from collections.abc import Sequence
import math


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Fills the full (m+1)x(n+1) dynamic-programming matrix with unit cost for
    insertion, deletion and substitution.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("ipone", "iphone")
        1
        >>> levenshtein_distance("", "abc")
        3
    """
    m, n = len(s1), len(s2)
    matrix = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        matrix[i][0] = i
    for j in range(n + 1):
        matrix[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[m][n]


def fuzzy_threshold(term_length: int, ratio: float, *, minimum: int = 2) -> int:
    """Return the maximum accepted edit distance for a query of ``term_length``.

    >>> fuzzy_threshold(5, 0.5)
    2
    >>> fuzzy_threshold(20, 0.4)
    8
    """
    return max(minimum, math.floor(term_length * ratio))


def name_distance(query: str, name: str) -> int:
    """Return the closest case-insensitive distance between a query and a name.

    The query is compared with the whole name and with every contiguous run of
    name words holding as many words as the query, so a one-word typo such as
    "ipone" is measured against "iphone" rather than the full
    "iPhone 15 Pro Max". The smallest distance wins. A window only counts when
    its distance is below the query length, so "qq" does not match "15".
    """
    query_lower = query.strip().lower()
    name_lower = name.strip().lower()
    best = levenshtein_distance(query_lower, name_lower)
    if not query_lower or best == 0:
        return best

    query_words = query_lower.split()
    name_words = name_lower.split()
    width = len(query_words)
    if width >= len(name_words):
        return best

    for start in range(len(name_words) - width + 1):
        window = " ".join(name_words[start : start + width])
        if abs(len(window) - len(query_lower)) >= best:
            continue
        distance = levenshtein_distance(query_lower, window)
        # A window the query shares no character with is not a near match
        if distance >= len(query_lower):
            continue
        best = min(best, distance)
        if best == 0:
            break
    return best


def find_fuzzy_matches(
    query_term: str,
    vocabulary: Sequence[str],
    max_distance: int,
    *,
    include_exact: bool = True,
) -> list[tuple[str, int]]:
    """Find vocabulary entries that fuzzy-match the query term.

    Args:
        query_term: The term to match (may contain a typo).
        vocabulary: Candidate strings (product names, index terms).
        max_distance: Maximum edit distance allowed.
        include_exact: When False, distance-0 candidates are dropped.

    Returns:
        List of (candidate, edit_distance) tuples sorted by distance, then by
        vocabulary order. Candidates are measured with ``name_distance``.
    """
    if not query_term.strip() or not vocabulary:
        return []

    matches: list[tuple[str, int]] = []
    for candidate in vocabulary:
        distance = name_distance(query_term, candidate)
        if distance > max_distance:
            continue
        if distance == 0 and not include_exact:
            continue
        matches.append((candidate, distance))

    matches.sort(key=lambda item: item[1])
    return matches
