"""Facet counts for filter sidebars."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from catalog_search.domain.model import Product
from catalog_search.domain.search import FacetCount, Facets, PriceRange


def _ranked(counter: Counter[str]) -> list[FacetCount]:
    return [FacetCount(value=value, count=count) for value, count in counter.most_common()]


def build_facets(products: Iterable[Product]) -> Facets:
    """Count categories, brands and stock status, and find the price range.

    Categories and brands are ordered by count, descending.
    """
    categories: Counter[str] = Counter()
    brands: Counter[str] = Counter()
    low: float | None = None
    high: float | None = None
    in_stock = 0
    out_of_stock = 0

    for product in products:
        if product.category:
            categories[product.category] += 1
        if product.brand:
            brands[product.brand] += 1
        low = product.price if low is None else min(low, product.price)
        high = product.price if high is None else max(high, product.price)
        if product.in_stock:
            in_stock += 1
        else:
            out_of_stock += 1

    price_range = PriceRange(min=low, max=high) if low is not None and high is not None else None
    return Facets(
        categories=_ranked(categories),
        brands=_ranked(brands),
        price_range=price_range,
        in_stock=in_stock,
        out_of_stock=out_of_stock,
    )
