"""Centralized configuration for catalog-search using Pydantic Settings."""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


FIELD_NAMES: tuple[str, ...] = ("main", "name", "description", "specs", "tags")

DEFAULT_FIELD_WEIGHTS: dict[str, float] = {"name": 1.0, "main": 0.8, "tags": 0.7, "specs": 0.6, "description": 0.5}
DEFAULT_CANDIDATE_LIMITS: dict[str, int] = {"name": 20, "description": 20, "specs": 15, "tags": 10}


class SearchSettings(BaseSettings):
    """Strictly typed engine configuration.

    Values can be overridden with ``CATALOG_SEARCH_*`` environment variables
    (for example ``CATALOG_SEARCH_NAME_BOOST=12``) or an ``.env`` file. The
    ranking constants are empirical defaults carried over from the storefront
    that first used them; tune them per catalog rather than treating them as
    fixed.
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    strategy: Literal["bm25", "multi_field"] = Field(
        default="bm25",
        description="Ranking pipeline: BM25 plus substring boosts, or weighted multi-field merge",
    )

    # BM25
    k1: float = Field(default=1.2, gt=0, description="BM25 term-frequency saturation")
    b: float = Field(default=0.75, ge=0.0, le=1.0, description="BM25 length normalization")

    # Multi-field merge
    field_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS),
        description="Per-field weight applied to the positional score; unlisted fields keep their default",
    )
    field_candidate_limits: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_CANDIDATE_LIMITS),
        description="Candidates taken from each field index; 'main' uses the request limit",
    )
    multi_field_boost_sources: int = Field(
        default=5, ge=1, description="Matched-field count at which the multi-field boost saturates"
    )
    prefix_match_discount: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Score multiplier for prefix (forward) term matches"
    )

    # Substring boosts (bm25 strategy)
    name_boost: float = Field(default=10.0, ge=0)
    description_boost: float = Field(default=5.0, ge=0)
    category_boost: float = Field(default=3.0, ge=0)
    brand_boost: float = Field(default=3.0, ge=0)
    fuzzy_base_score: float = Field(default=5.0, gt=0, description="Fallback score is base minus edit distance")

    # Fuzzy thresholds: max(min_fuzzy_threshold, floor(len(query) * ratio))
    suggestion_fuzzy_ratio: float = Field(default=0.3, gt=0)
    search_fuzzy_ratio: float = Field(default=0.4, gt=0)
    did_you_mean_ratio: float = Field(default=0.5, gt=0)
    min_fuzzy_threshold: int = Field(default=2, ge=0)

    # Autocomplete
    trie_node_capacity: int = Field(default=10, ge=1, description="Suggestions cached per trie node")
    trie_suggestion_limit: int = Field(default=5, ge=0, description="Trie suggestions taken before fuzzy fill")
    max_suggestions: int = Field(default=8, ge=1)
    min_suggestion_length: int = Field(default=2, ge=1)
    min_trie_word_length: int = Field(default=3, ge=1, description="Shortest name word inserted into the trie")

    # Results and history
    default_limit: int = Field(default=50, ge=1)
    history_max_entries: int = Field(default=1000, ge=1)
    history_trim_to: int = Field(default=500, ge=1)
    history_display_limit: int = Field(default=10, ge=1)
    popular_display_limit: int = Field(default=10, ge=1)

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    @field_validator("field_weights")
    @classmethod
    def _check_weights(cls, weights: dict[str, float]) -> dict[str, float]:
        unknown = set(weights) - set(FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown fields in field_weights: {sorted(unknown)}")
        if any(weight < 0 for weight in weights.values()):
            raise ValueError("field_weights must be non-negative")
        return {**DEFAULT_FIELD_WEIGHTS, **weights}

    @field_validator("field_candidate_limits")
    @classmethod
    def _check_limits(cls, limits: dict[str, int]) -> dict[str, int]:
        unknown = set(limits) - set(FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown fields in field_candidate_limits: {sorted(unknown)}")
        if any(limit < 1 for limit in limits.values()):
            raise ValueError("field_candidate_limits must be positive")
        return {**DEFAULT_CANDIDATE_LIMITS, **limits}

    @model_validator(mode="after")
    def _check_history(self) -> "SearchSettings":
        if self.history_trim_to > self.history_max_entries:
            raise ValueError("history_trim_to must not exceed history_max_entries")
        return self

    def field_weight(self, field_name: str) -> float:
        return self.field_weights.get(field_name, 0.5)
