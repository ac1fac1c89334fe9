"""In-process product search: BM25 ranking, multi-field merge, autocomplete and typo tolerance."""

from catalog_search.config import SearchSettings
from catalog_search.domain import (
    Facets,
    Highlight,
    HighlightMatch,
    Product,
    SearchFilters,
    SearchMetrics,
    SearchResult,
    SearchSuggestion,
    SortBy,
    Specification,
    SuggestionType,
)
from catalog_search.search_engine import SearchEngine, validate_records


__version__ = "0.1.0"

__all__ = [
    "Facets",
    "Highlight",
    "HighlightMatch",
    "Product",
    "SearchEngine",
    "SearchFilters",
    "SearchMetrics",
    "SearchResult",
    "SearchSettings",
    "SearchSuggestion",
    "SortBy",
    "Specification",
    "SuggestionType",
    "validate_records",
]
