from fastapi import APIRouter, Depends, Query, status

from app.schemas.product import ProductStats, ProductSummary
from app.services.product_store import ProductStore
from app.services.search_service import get_product_store

router = APIRouter(prefix="/products", tags=["Products"])


# ============================================================================
# Listing Collections (Must be defined BEFORE /{product_id})
# ============================================================================


@router.get("/featured", response_model=list[ProductSummary])
async def get_featured_products(
    limit: int = Query(default=10, ge=1, le=100),
    store: ProductStore = Depends(get_product_store),
):
    """Featured active listings, newest first."""
    return await store.featured(limit=limit)


@router.get("/recent", response_model=list[ProductSummary])
async def get_recent_products(
    limit: int = Query(default=10, ge=1, le=100),
    store: ProductStore = Depends(get_product_store),
):
    """Most recently created active listings."""
    return await store.recent(limit=limit)


@router.get("/category/{category}", response_model=list[ProductSummary])
async def get_products_by_category(
    category: str,
    limit: int = Query(default=10, ge=1, le=100),
    store: ProductStore = Depends(get_product_store),
):
    """Newest active listings in one category."""
    return await store.by_category(category, limit=limit)


@router.get("/stats", response_model=ProductStats)
async def get_product_stats(store: ProductStore = Depends(get_product_store)):
    """Listing counts, average price and per-category counts."""
    return await store.stats()


@router.get("/slug/{slug}", response_model=ProductSummary)
async def get_product_by_slug(slug: str, store: ProductStore = Depends(get_product_store)):
    return await store.get_by_slug(slug)


# ============================================================================
# Single Listing Endpoints
# ============================================================================


@router.get("/{product_id}", response_model=ProductSummary)
async def get_product(product_id: str, store: ProductStore = Depends(get_product_store)):
    """Get an active listing by id (404 when missing)."""
    return await store.get_by_id(product_id)


@router.post("/{product_id}/view", status_code=status.HTTP_204_NO_CONTENT)
async def record_product_view(product_id: str, store: ProductStore = Depends(get_product_store)):
    """Increment a listing's view count."""
    await store.increment_view_count(product_id)
