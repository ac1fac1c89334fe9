"""Domain model for catalog products.

Products arrive from the surrounding storefront as loosely-typed records
(camelCase keys, optional fields missing or null, specifications either as a
list of name/value pairs or as a plain mapping). The model normalizes all of
that at the boundary so the index code only ever sees strings and lists.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Specification(BaseModel):
    """Value object for a single ``name: value`` product specification."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    def as_text(self) -> str:
        return f"{self.name} {self.value}".strip()


class Product(BaseModel):
    """Immutable snapshot of a catalog product as seen by the search engine."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    category: str = ""
    brand: str | None = None
    tags: list[str] = Field(default_factory=list)
    specifications: list[Specification] = Field(default_factory=list)
    price: float = Field(ge=0)
    in_stock: bool = True
    featured: bool = False
    rating: float | None = None
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("description", "category", mode="before")
    @classmethod
    def _empty_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("brand", mode="before")
    @classmethod
    def _blank_brand(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [tag for tag in value if isinstance(tag, str) and tag.strip()]

    @field_validator("specifications", mode="before")
    @classmethod
    def _normalize_specifications(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, Mapping):
            return [{"name": str(name), "value": spec_value} for name, spec_value in value.items()]
        return value

    def specification_text(self) -> str:
        """Return specifications joined as ``"name value name value ..."``."""
        return " ".join(spec.as_text() for spec in self.specifications)

    def searchable_text(self) -> str:
        """Text indexed by the single-field BM25 index."""
        return " ".join(part for part in (self.name, self.description, self.category, self.brand or "") if part)

    def full_text(self) -> str:
        """Every searchable field, used by the combined multi-field index."""
        parts = [
            self.name,
            self.description,
            self.category,
            self.brand or "",
            *self.tags,
            self.specification_text(),
        ]
        return " ".join(part for part in parts if part)
