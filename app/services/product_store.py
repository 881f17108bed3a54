from abc import ABC, abstractmethod

from app.schemas.product import ProductStats, ProductSummary
from app.schemas.search import FetchDirectives, FetchResult

PRODUCT_CATEGORIES = (
    "game_accounts",
    "in_game_currency",
    "top_ups",
    "boosting_services",
    "gift_cards",
    "gaming_hardware",
    "digital_games",
    "other",
)


class ProductStore(ABC):
    """
    Storage/search collaborator for active listings.

    ``execute`` must return an exact ``total_count`` computed over the same
    predicates as ``items`` and never more than ``directives.limit`` items.
    Failures surface as ``ExecutionError``.
    """

    @abstractmethod
    async def execute(self, directives: FetchDirectives) -> FetchResult:
        ...

    @abstractmethod
    async def get_by_id(self, product_id: str) -> ProductSummary:
        """Raise NotFoundError when no active listing has this id."""
        ...

    @abstractmethod
    async def get_by_slug(self, slug: str) -> ProductSummary:
        """Raise NotFoundError when no active listing has this slug."""
        ...

    @abstractmethod
    async def featured(self, limit: int = 10) -> list[ProductSummary]:
        ...

    @abstractmethod
    async def recent(self, limit: int = 10) -> list[ProductSummary]:
        ...

    @abstractmethod
    async def by_category(self, category: str, limit: int = 10) -> list[ProductSummary]:
        ...

    @abstractmethod
    async def stats(self) -> ProductStats:
        ...

    @abstractmethod
    async def increment_view_count(self, product_id: str) -> None:
        """Raise NotFoundError when no active listing has this id."""
        ...
