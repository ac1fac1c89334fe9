"""Query history and popularity tracking."""

from __future__ import annotations

from collections import Counter
import logging
from typing import Any

from catalog_search.domain.search import SearchMetrics


logger = logging.getLogger(__name__)


def normalize_query(query: str) -> str:
    return " ".join(query.lower().split())


class SearchHistory:
    """Bounded record of executed searches plus a popularity counter.

    Once the buffer grows past ``max_entries`` it is cut back to the newest
    ``trim_to`` entries (oldest dropped first). The popularity counter is not
    trimmed.
    """

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        trim_to: int = 500,
        display_limit: int = 10,
        popular_limit: int = 10,
    ) -> None:
        if trim_to > max_entries:
            raise ValueError("trim_to must not exceed max_entries")
        self.max_entries = max_entries
        self.trim_to = trim_to
        self.display_limit = display_limit
        self.popular_limit = popular_limit
        self._entries: list[SearchMetrics] = []
        self._popularity: Counter[str] = Counter()

    def __len__(self) -> int:
        return len(self._entries)

    def record(
        self,
        query: str,
        result_count: int,
        search_time_ms: float,
        filters: dict[str, Any] | None = None,
    ) -> SearchMetrics | None:
        """Append a history entry and bump the popularity of the normalized query."""
        normalized = normalize_query(query)
        if not normalized:
            return None

        entry = SearchMetrics(
            query=normalized,
            result_count=result_count,
            search_time_ms=search_time_ms,
            filters=dict(filters or {}),
        )
        self._entries.append(entry)
        self._popularity[normalized] += 1

        if len(self._entries) > self.max_entries:
            dropped = len(self._entries) - self.trim_to
            del self._entries[:dropped]
            logger.debug("Trimmed %d search history entries", dropped)
        return entry

    def recent_queries(self, limit: int | None = None) -> list[str]:
        """Distinct queries, most recent first."""
        limit = self.display_limit if limit is None else limit
        seen: set[str] = set()
        queries: list[str] = []
        for entry in reversed(self._entries):
            if entry.query in seen:
                continue
            seen.add(entry.query)
            queries.append(entry.query)
            if len(queries) >= limit:
                break
        return queries

    def popular_queries(self, limit: int | None = None) -> list[str]:
        """Queries by hit count, descending; ties keep first-seen order."""
        limit = self.popular_limit if limit is None else limit
        return [query for query, _count in self._popularity.most_common(limit)]

    def popularity(self, query: str) -> int:
        return self._popularity.get(normalize_query(query), 0)

    def entries(self) -> list[SearchMetrics]:
        return list(self._entries)

    def average_search_time_ms(self) -> float:
        if not self._entries:
            return 0.0
        return sum(entry.search_time_ms for entry in self._entries) / len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._popularity.clear()
