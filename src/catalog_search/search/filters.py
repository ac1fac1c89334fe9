"""Post-filters and result ordering shared by every ranking strategy."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import timezone

from catalog_search.domain.model import Product
from catalog_search.domain.search import SearchFilters, SearchResult, SortBy


def matches_filters(product: Product, filters: SearchFilters) -> bool:
    """Return True when ``product`` passes every filter that is set."""
    if filters.category and product.category != filters.category:
        return False
    if filters.brand and product.brand != filters.brand:
        return False
    if filters.min_price is not None and product.price < filters.min_price:
        return False
    if filters.max_price is not None and product.price > filters.max_price:
        return False
    if filters.in_stock is not None and product.in_stock != filters.in_stock:
        return False
    if filters.featured is not None and product.featured != filters.featured:
        return False
    if filters.min_rating and (product.rating or 0) < filters.min_rating:
        return False
    return True


def apply_filters(results: Sequence[SearchResult], filters: SearchFilters | None) -> list[SearchResult]:
    if filters is None:
        return list(results)
    return [result for result in results if matches_filters(result.product, filters)]


def _newest_key(result: SearchResult) -> tuple[bool, float]:
    """Sort key for ``newest``: dated products by date descending, undated last."""
    created = result.product.created_at
    if created is None:
        return (True, 0.0)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (False, -created.timestamp())


_SORT_KEYS: dict[SortBy, Callable[[SearchResult], object]] = {
    SortBy.RELEVANCE: lambda result: -result.relevance,
    SortBy.PRICE_ASC: lambda result: result.product.price,
    SortBy.PRICE_DESC: lambda result: -result.product.price,
    SortBy.NAME: lambda result: (result.product.name.casefold(), result.product.name),
    SortBy.NEWEST: _newest_key,
}


def sort_results(results: Sequence[SearchResult], sort_by: SortBy = SortBy.RELEVANCE) -> list[SearchResult]:
    """Return ``results`` ordered by ``sort_by``.

    The sort is stable: equal keys keep their incoming order, which is catalog
    order for browse queries and index order for scored ones.
    """
    return sorted(results, key=_SORT_KEYS[SortBy(sort_by)])
