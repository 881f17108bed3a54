import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import ExecutionError, NotFoundError
from app.schemas.product import ProductStats, ProductSummary
from app.schemas.search import FetchDirectives, FetchResult
from app.services.mongo_query_builder import PROJECTION, build_pipeline
from app.services.product_store import PRODUCT_CATEGORIES, ProductStore

logger = logging.getLogger(__name__)

ACTIVE = {"status": "active"}


class ProductService(ProductStore):
    """MongoDB-backed product store."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[settings.PRODUCTS_COLLECTION]

    # ============================================================================
    # Search
    # ============================================================================

    async def execute(self, directives: FetchDirectives) -> FetchResult:
        """Run one windowed search plus its exact count in a single aggregation."""
        pipeline = build_pipeline(directives)
        try:
            cursor = self.collection.aggregate(pipeline)
            documents = await cursor.to_list(length=1)
        except PyMongoError as e:
            logger.error(f"Search aggregation failed: {e} (directives: {directives.to_request().model_dump(exclude_none=True)})")
            raise ExecutionError(f"Product search failed: {e}", detail={"backend": "mongo"}) from e

        result = documents[0] if documents else {"items": [], "total": []}
        total = result["total"][0]["count"] if result.get("total") else 0
        items = [ProductSummary.model_validate(doc) for doc in result["items"]]
        return FetchResult(items=items, total_count=total)

    # ============================================================================
    # Catalogue reads
    # ============================================================================

    async def _find_one(self, filter_query: dict[str, Any], label: str) -> ProductSummary:
        try:
            document = await self.collection.find_one({**filter_query, **ACTIVE}, PROJECTION)
        except PyMongoError as e:
            raise ExecutionError(f"Failed to fetch product: {e}", detail={"backend": "mongo"}) from e
        if not document:
            raise NotFoundError(f"Product {label} not found", detail=filter_query)
        return ProductSummary.model_validate(document)

    async def get_by_id(self, product_id: str) -> ProductSummary:
        return await self._find_one({"id": product_id}, product_id)

    async def get_by_slug(self, slug: str) -> ProductSummary:
        return await self._find_one({"slug": slug}, f"with slug {slug}")

    async def _newest(self, filter_query: dict[str, Any], limit: int) -> list[ProductSummary]:
        try:
            cursor = self.collection.find({**filter_query, **ACTIVE}, PROJECTION).sort("created_at", -1).limit(limit)
            documents = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise ExecutionError(f"Failed to list products: {e}", detail={"backend": "mongo"}) from e
        return [ProductSummary.model_validate(doc) for doc in documents]

    async def featured(self, limit: int = 10) -> list[ProductSummary]:
        return await self._newest({"is_featured": True}, limit)

    async def recent(self, limit: int = 10) -> list[ProductSummary]:
        return await self._newest({}, limit)

    async def by_category(self, category: str, limit: int = 10) -> list[ProductSummary]:
        return await self._newest({"category": category}, limit)

    async def stats(self) -> ProductStats:
        pipeline = [
            {
                "$facet": {
                    "totals": [
                        {
                            "$group": {
                                "_id": None,
                                "total": {"$sum": 1},
                                "active": {"$sum": {"$cond": [{"$eq": ["$status", "active"]}, 1, 0]}},
                                "sold": {"$sum": {"$cond": [{"$eq": ["$status", "sold"]}, 1, 0]}},
                                "average_price": {"$avg": {"$cond": [{"$gt": ["$price", 0]}, "$price", None]}},
                            }
                        }
                    ],
                    "categories": [{"$group": {"_id": "$category", "count": {"$sum": 1}}}],
                }
            }
        ]
        try:
            cursor = self.collection.aggregate(pipeline)
            documents = await cursor.to_list(length=1)
        except PyMongoError as e:
            raise ExecutionError(f"Failed to compute product stats: {e}", detail={"backend": "mongo"}) from e

        result = documents[0] if documents else {"totals": [], "categories": []}
        totals = result["totals"][0] if result["totals"] else {}
        categories_count = {category: 0 for category in PRODUCT_CATEGORIES}
        for row in result["categories"]:
            if row["_id"] in categories_count:
                categories_count[row["_id"]] = row["count"]

        return ProductStats(
            total_products=totals.get("total", 0),
            active_products=totals.get("active", 0),
            sold_products=totals.get("sold", 0),
            average_price=totals.get("average_price") or 0.0,
            categories_count=categories_count,
        )

    async def increment_view_count(self, product_id: str) -> None:
        try:
            result = await self.collection.update_one({"id": product_id, **ACTIVE}, {"$inc": {"view_count": 1}})
        except PyMongoError as e:
            raise ExecutionError(f"Failed to record product view: {e}", detail={"backend": "mongo"}) from e
        if result.matched_count == 0:
            raise NotFoundError(f"Product {product_id} not found", detail={"id": product_id})
