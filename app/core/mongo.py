import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT, IndexModel

from app.core.config import settings

logger = logging.getLogger(__name__)
mongo_client: AsyncIOMotorClient | None = None
mongo_db: AsyncIOMotorDatabase | None = None

# Full-text search covers the same fields the in-memory store tokenizes
PRODUCT_INDEXES = [
    IndexModel(
        [("title", TEXT), ("description", TEXT), ("game_title", TEXT), ("platform", TEXT), ("tags", TEXT)],
        name="product_search_text",
        weights={"title": 10, "game_title": 5, "tags": 5, "platform": 2, "description": 1},
        default_language="english",
    ),
    IndexModel([("status", ASCENDING), ("created_at", DESCENDING), ("id", ASCENDING)], name="status_newest"),
    IndexModel([("status", ASCENDING), ("category", ASCENDING), ("price", ASCENDING)], name="status_category_price"),
    IndexModel([("id", ASCENDING)], name="product_id", unique=True),
    IndexModel([("slug", ASCENDING)], name="product_slug", sparse=True),
]


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the product indexes search depends on ($text needs the text index)."""
    names = await db[settings.PRODUCTS_COLLECTION].create_indexes(PRODUCT_INDEXES)
    logger.info(f"Ensured {len(names)} indexes on {settings.PRODUCTS_COLLECTION}")


async def connect_mongo():
    global mongo_client, mongo_db
    mongo_client = AsyncIOMotorClient(settings.MONGO_URL)
    mongo_db = mongo_client[settings.MONGO_DB_NAME]
    logger.info(f"🍃 Connected to MongoDB: {settings.MONGO_DB_NAME}")
    if settings.MONGO_ENSURE_INDEXES:
        await ensure_indexes(mongo_db)


async def close_mongo():
    global mongo_client, mongo_db
    if mongo_client:
        mongo_client.close()
        mongo_client = None
        mongo_db = None
        logger.info("MongoDB connection closed")


def get_mongo_db() -> AsyncIOMotorDatabase:
    if mongo_db is None:
        raise RuntimeError("MongoDB not connected. Ensure connect_mongo() was called.")
    return mongo_db
