"""Canonical search query model and the partial updates applied to it."""

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from app.services.bm25_service import tokenize

DEFAULT_QUERY_LIMIT = 20

SET_FACETS = ("category", "condition", "platform", "tags")
SCALAR_FACETS = (
    "location",
    "game_title",
    "price_min",
    "price_max",
    "shipping_available",
    "is_negotiable",
    "is_instant_delivery",
)
FACET_FIELDS = SET_FACETS + SCALAR_FACETS


class ProductCategory(str, Enum):
    GAME_ACCOUNTS = "game_accounts"
    IN_GAME_CURRENCY = "in_game_currency"
    TOP_UPS = "top_ups"
    BOOSTING_SERVICES = "boosting_services"
    GIFT_CARDS = "gift_cards"
    GAMING_HARDWARE = "gaming_hardware"
    DIGITAL_GAMES = "digital_games"
    OTHER = "other"


class ProductCondition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like_new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class SortField(str, Enum):
    CREATED_AT = "created_at"
    PRICE = "price"
    VIEW_COUNT = "view_count"
    RELEVANCE = "relevance"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC


DEFAULT_SORT = SortSpec()

# Named sort choices offered to users
SORT_OPTIONS: dict[str, SortSpec] = {
    "created_at_desc": SortSpec(field=SortField.CREATED_AT, direction=SortDirection.DESC),
    "created_at_asc": SortSpec(field=SortField.CREATED_AT, direction=SortDirection.ASC),
    "price_asc": SortSpec(field=SortField.PRICE, direction=SortDirection.ASC),
    "price_desc": SortSpec(field=SortField.PRICE, direction=SortDirection.DESC),
    "view_count_desc": SortSpec(field=SortField.VIEW_COUNT, direction=SortDirection.DESC),
    "relevance": SortSpec(field=SortField.RELEVANCE, direction=SortDirection.DESC),
}


class PriceRange(BaseModel):
    """A price bracket; either bound may be open."""

    model_config = ConfigDict(frozen=True)

    price_min: float | None = None
    price_max: float | None = None


# Quick price brackets (PKR)
QUICK_PRICE_RANGES: dict[str, PriceRange] = {
    "under_1k": PriceRange(price_min=0, price_max=1000),
    "1k_5k": PriceRange(price_min=1000, price_max=5000),
    "5k_15k": PriceRange(price_min=5000, price_max=15000),
    "15k_plus": PriceRange(price_min=15000, price_max=None),
}


def normalize_value_set(values: Iterable[str] | None) -> frozenset[str] | None:
    """Strip blanks and duplicates; an empty result means "no filter"."""
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]
    cleaned = frozenset(v.strip() for v in values if v and v.strip())
    return cleaned or None


class Facets(BaseModel):
    """Independently filterable search dimensions. ``None`` means unconstrained."""

    model_config = ConfigDict(frozen=True)

    category: frozenset[str] | None = None
    condition: frozenset[str] | None = None
    platform: frozenset[str] | None = None
    tags: frozenset[str] | None = None
    location: str | None = None
    game_title: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    shipping_available: bool | None = None
    is_negotiable: bool | None = None
    is_instant_delivery: bool | None = None

    @field_validator(*SET_FACETS, mode="before")
    @classmethod
    def _normalize_sets(cls, value):
        return normalize_value_set(value)

    @field_validator("location", "game_title", mode="before")
    @classmethod
    def _normalize_substrings(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_serializer(*SET_FACETS)
    def _serialize_sets(self, value: frozenset[str] | None) -> list[str] | None:
        return sorted(value) if value is not None else None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in FACET_FIELDS)

    def price_violations(self) -> list[str]:
        """Describe every way the price bounds are inconsistent (empty when valid)."""
        problems = []
        if self.price_min is not None and self.price_min < 0:
            problems.append(f"price_min must not be negative (got {self.price_min})")
        if self.price_max is not None and self.price_max < 0:
            problems.append(f"price_max must not be negative (got {self.price_max})")
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            problems.append(f"price_min ({self.price_min}) is greater than price_max ({self.price_max})")
        return problems


class Query(BaseModel):
    """
    Immutable description of what the user currently wants to see.

    Equality is structural, and facet sets compare by content, so two queries
    built from the same choices in a different order are equal and hash alike.
    """

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    facets: Facets = Field(default_factory=Facets)
    sort: SortSpec = Field(default_factory=SortSpec)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_QUERY_LIMIT, gt=0)

    @field_validator("text", mode="before")
    @classmethod
    def _normalize_text(cls, value):
        # Text without a single searchable term is no text at all
        if isinstance(value, str):
            value = value.strip()
            return value if tokenize(value) else None
        return value

    @classmethod
    def default(cls, limit: int = DEFAULT_QUERY_LIMIT) -> "Query":
        return cls(limit=limit)


class PartialQuery(BaseModel):
    """
    A partial update to a Query.

    Only the fields a caller actually sets take part in the update. Scalar
    facets explicitly set to ``None`` are cleared. Set-valued facets carry a
    single candidate value that is toggled in or out of the current set.
    """

    model_config = ConfigDict(extra="forbid")

    text: str | None = None

    # Scalar facets
    location: str | None = None
    game_title: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    shipping_available: bool | None = None
    is_negotiable: bool | None = None
    is_instant_delivery: bool | None = None

    # Toggle candidates for set-valued facets
    category: str | None = None
    condition: str | None = None
    platform: str | None = None
    tags: str | None = None

    # Named quick price bracket, applied to both bounds at once
    price_bracket: str | None = None

    sort: SortSpec | None = None
    # Named sort choice (see SORT_OPTIONS); overrides `sort`
    sort_option: str | None = None
    page: int | None = Field(default=None, ge=1)
    clear: bool = False
