from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.schemas.product import ProductSummary
from app.schemas.query import Facets, Query, SortDirection, SortField, SortSpec


class PredicateOp(str, Enum):
    TEXT_MATCH = "text_match"  # full-text match against the searchable corpus
    IN = "in"  # value is one of
    OVERLAPS = "overlaps"  # array field shares at least one value
    GTE = "gte"
    LTE = "lte"
    ILIKE = "ilike"  # case-insensitive substring
    EQ = "eq"


class Predicate(BaseModel):
    """One backend-executable filter condition"""

    model_config = ConfigDict(frozen=True)

    field: str
    op: PredicateOp
    value: Any


class FetchDirectives(BaseModel):
    """
    Everything a storage collaborator needs to run one fetch.

    Predicates are ANDed together. Rows ``[offset, offset + limit - 1]`` are
    requested along with an exact count over the same predicates.
    """

    model_config = ConfigDict(frozen=True)

    predicates: tuple[Predicate, ...] = ()
    sort: SortSpec
    offset: int = Field(..., ge=0)
    limit: int = Field(..., gt=0)

    @property
    def range_end(self) -> int:
        return self.offset + self.limit - 1

    def text(self) -> str | None:
        for predicate in self.predicates:
            if predicate.op == PredicateOp.TEXT_MATCH:
                return predicate.value
        return None

    def to_request(self) -> "FetchRequest":
        """Flatten the predicates into the wire shape consumed by search backends."""
        values: dict[str, Any] = {}
        for predicate in self.predicates:
            if predicate.op == PredicateOp.TEXT_MATCH:
                values["text"] = predicate.value
            elif predicate.op == PredicateOp.GTE and predicate.field == "price":
                values["price_min"] = predicate.value
            elif predicate.op == PredicateOp.LTE and predicate.field == "price":
                values["price_max"] = predicate.value
            elif predicate.op in (PredicateOp.IN, PredicateOp.OVERLAPS):
                values[predicate.field] = list(predicate.value)
            else:
                values[predicate.field] = predicate.value

        return FetchRequest(
            **values,
            sort_field=self.sort.field,
            sort_direction=self.sort.direction,
            offset=self.offset,
            limit=self.limit,
        )


class FetchRequest(BaseModel):
    """Flat request shape of a fetch"""

    text: str | None = None
    category: list[str] | None = None
    condition: list[str] | None = None
    platform: list[str] | None = None
    tags: list[str] | None = None
    location: str | None = None
    game_title: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    shipping_available: bool | None = None
    is_negotiable: bool | None = None
    is_instant_delivery: bool | None = None
    sort_field: SortField
    sort_direction: SortDirection
    offset: int
    limit: int


class FetchResult(BaseModel):
    """A page of results plus the exact count over the same predicates"""

    items: list[ProductSummary]
    total_count: int = Field(..., ge=0)


class SearchRequest(BaseModel):
    """One-shot search request"""

    q: str | None = Field(default=None, description="Free-text search term")
    category: list[str] | None = None
    condition: list[str] | None = None
    platform: list[str] | None = None
    tags: list[str] | None = None
    location: str | None = None
    game_title: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    shipping_available: bool | None = None
    is_negotiable: bool | None = None
    is_instant_delivery: bool | None = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortDirection = SortDirection.DESC
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.DEFAULT_PAGE_LIMIT, gt=0, le=settings.MAX_PAGE_LIMIT)

    def to_query(self) -> Query:
        facets = Facets(
            category=self.category,
            condition=self.condition,
            platform=self.platform,
            tags=self.tags,
            location=self.location,
            game_title=self.game_title,
            price_min=self.price_min,
            price_max=self.price_max,
            shipping_available=self.shipping_available,
            is_negotiable=self.is_negotiable,
            is_instant_delivery=self.is_instant_delivery,
        )
        return Query(
            text=self.q,
            facets=facets,
            sort=SortSpec(field=self.sort_by, direction=self.sort_order),
            page=self.page,
            limit=self.limit,
        )


class SuggestionResponse(BaseModel):
    query: str
    suggestions: list[str]
