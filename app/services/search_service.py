"""One-shot product search and product store wiring"""

import logging
from functools import lru_cache

from fastapi import Depends

from app.core.config import settings
from app.core.mongo import get_mongo_db
from app.schemas.product import Page, ProductSearchResult
from app.schemas.search import SearchRequest
from app.services.memory_store import InMemoryProductStore
from app.services.predicate_translator import translate
from app.services.product_service import ProductService
from app.services.product_store import ProductStore

logger = logging.getLogger(__name__)


class SearchService:
    """
    Stateless search: one request in, one page out.

    Search flow:
    1. Build the canonical Query from the request
    2. Translate it to fetch directives (rejects invalid queries, no fetch made)
    3. Execute the directives on the product store
    4. Wrap items and pagination metadata
    """

    def __init__(self, store: ProductStore):
        self.store = store

    async def search_products(self, request: SearchRequest) -> ProductSearchResult:
        """
        Execute a filtered, sorted, paginated product search.

        Args:
            request: Search text, facets, sort and page

        Returns:
            ProductSearchResult with the page of products and pagination flags
        """
        query = request.to_query()
        directives = translate(query)

        logger.info(f"🔍 Search: text={query.text!r} predicates={len(directives.predicates)} page={query.page}")

        result = await self.store.execute(directives)
        page = Page(page=query.page, limit=query.limit, total_count=result.total_count)

        logger.info(f"✅ {len(result.items)} of {result.total_count} products")

        return ProductSearchResult(
            products=result.items,
            total_count=result.total_count,
            page=page.page,
            limit=page.limit,
            has_next=page.has_next,
            has_prev=page.has_prev,
            applied_filters=directives.to_request().model_dump(mode="json", exclude_none=True),
        )


@lru_cache
def get_memory_store() -> InMemoryProductStore:
    """Get the cached in-process store, seeded from SEED_PRODUCTS_PATH if set"""
    if settings.SEED_PRODUCTS_PATH:
        return InMemoryProductStore.from_json_file(settings.SEED_PRODUCTS_PATH)
    return InMemoryProductStore()


def get_product_store() -> ProductStore:
    """Get the product store selected by PRODUCT_STORE"""
    if settings.PRODUCT_STORE == "memory":
        return get_memory_store()
    return ProductService(get_mongo_db())


def get_search_service(store: ProductStore = Depends(get_product_store)) -> SearchService:
    return SearchService(store)
