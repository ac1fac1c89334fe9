"""Domain layer - products plus search request/response value objects."""

from catalog_search.domain.model import Product, Specification
from catalog_search.domain.search import (
    FacetCount,
    Facets,
    Highlight,
    HighlightMatch,
    PriceRange,
    SearchFilters,
    SearchMetrics,
    SearchResult,
    SearchSuggestion,
    SortBy,
    SuggestionType,
)


__all__ = [
    "FacetCount",
    "Facets",
    "Highlight",
    "HighlightMatch",
    "PriceRange",
    "Product",
    "SearchFilters",
    "SearchMetrics",
    "SearchResult",
    "SearchSuggestion",
    "SortBy",
    "Specification",
    "SuggestionType",
]
