from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ProductSummary(BaseModel):
    """A listing as shown in a result grid."""

    model_config = ConfigDict(from_attributes=True, extra="allow")

    id: str
    seller_id: str | None = None
    title: str
    description: str = ""
    slug: str | None = None
    category: str
    subcategory: str | None = None
    price: float = Field(..., ge=0)
    original_price: float | None = None
    currency: str = "PKR"
    condition: str = "new"
    platform: str | None = None
    game_title: str | None = None
    location: str | None = None
    tags: list[str] = Field(default_factory=list)
    thumbnail_url: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    is_negotiable: bool = False
    is_instant_delivery: bool = False
    shipping_available: bool = False
    status: str = "active"
    is_featured: bool = False
    is_verified: bool = False
    view_count: int = 0
    favorite_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None


class Page(BaseModel):
    """Pagination metadata for one fetched page of a query."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(..., ge=1)
    limit: int = Field(..., gt=0)
    total_count: int = Field(..., ge=0)

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total_count

    @computed_field
    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @computed_field
    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.limit)


class ProductSearchResult(BaseModel):
    """Response model for a one-shot search"""

    products: list[ProductSummary]
    total_count: int
    page: int
    limit: int
    has_next: bool
    has_prev: bool
    applied_filters: dict = Field(default_factory=dict)


class ProductStats(BaseModel):
    """Catalogue-wide listing counts"""

    total_products: int
    active_products: int
    sold_products: int
    average_price: float
    categories_count: dict[str, int]
