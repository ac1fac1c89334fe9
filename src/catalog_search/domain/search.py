"""Domain models for search requests and results.

Value objects are immutable (frozen=True). They carry no index state, so
collaborators can hold on to results after the catalog changes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from catalog_search.domain.model import Product


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME = "name"
    NEWEST = "newest"


class SuggestionType(str, Enum):
    PRODUCT = "product"
    CATEGORY = "category"
    BRAND = "brand"
    TAG = "tag"


class SearchFilters(BaseModel):
    """Post-filters, ordering and page size for a search call.

    All filters combine with boolean AND; ``None`` means "don't filter".
    """

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    brand: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    in_stock: bool | None = None
    featured: bool | None = None
    min_rating: float | None = Field(default=None, ge=0)
    sort_by: SortBy = SortBy.RELEVANCE
    limit: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_price_range(self) -> "SearchFilters":
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        return self

    @classmethod
    def price_range(cls, low: float, high: float, **kwargs: Any) -> "SearchFilters":
        return cls(min_price=low, max_price=high, **kwargs)

    def active(self) -> dict[str, Any]:
        """Return only the filters that were set, for history records and logs."""
        return self.model_dump(mode="json", exclude_none=True, exclude_defaults=True)


class HighlightMatch(BaseModel):
    """A ``[start, end)`` span of a field that matched a query token."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    text: str


class Highlight(BaseModel):
    """All matches found in one product field."""

    model_config = ConfigDict(frozen=True)

    field: str
    text: str
    matches: list[HighlightMatch]


class SearchResult(BaseModel):
    """A ranked product with the fields that matched and their highlight spans."""

    model_config = ConfigDict(frozen=True)

    product: Product
    relevance: float
    matched_fields: list[str] = Field(default_factory=list)
    highlights: list[Highlight] = Field(default_factory=list)


class SearchSuggestion(BaseModel):
    """Autocomplete entry."""

    model_config = ConfigDict(frozen=True)

    text: str
    type: SuggestionType = SuggestionType.PRODUCT
    count: int = 1


class SearchMetrics(BaseModel):
    """One entry of the query history buffer."""

    model_config = ConfigDict(frozen=True)

    query: str
    result_count: int
    search_time_ms: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    filters: dict[str, Any] = Field(default_factory=dict)


class FacetCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    count: int


class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float


class Facets(BaseModel):
    """Filter options derived from a set of products."""

    model_config = ConfigDict(frozen=True)

    categories: list[FacetCount] = Field(default_factory=list)
    brands: list[FacetCount] = Field(default_factory=list)
    price_range: PriceRange | None = None
    in_stock: int = 0
    out_of_stock: int = 0
