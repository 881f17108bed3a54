from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    APP_NAME: str = "Marketplace Search API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Which collaborator executes fetch directives
    PRODUCT_STORE: Literal["mongo", "memory"] = "mongo"

    # MongoDB settings
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "marketplace"
    MONGO_ENSURE_INDEXES: bool = True  # Create the text index etc. on startup

    # Collection names
    PRODUCTS_COLLECTION: str = "products"

    # Memory store seed data (JSON list of products)
    SEED_PRODUCTS_PATH: str | None = None

    # Pagination settings
    DEFAULT_PAGE_LIMIT: int = 20  # One-shot search default
    GRID_PAGE_LIMIT: int = 12  # Page size of a search session grid
    MAX_PAGE_LIMIT: int = 100
    MAX_RESULT_WINDOW: int = 10_000  # Largest offset + limit we will ask a backend for

    # Search surface settings
    SUGGESTION_LIMIT: int = 5
    MAX_SEARCH_SESSIONS: int = 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
