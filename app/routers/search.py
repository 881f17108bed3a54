from fastapi import APIRouter, Depends, Query

from app.schemas.product import ProductSearchResult
from app.schemas.search import SearchRequest, SuggestionResponse
from app.services.search_service import SearchService, get_search_service
from app.services.suggestion_engine import SuggestionEngine, get_suggestion_engine

router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=ProductSearchResult)
async def search_products(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
):
    """
    Filtered, sorted, paginated product search.

    All facets combine with AND; multiple values of one facet combine with OR.

    📝 **Examples:**
        ```json
        # PUBG game accounts, cheapest first
        {"q": "PUBG", "category": ["game_accounts"], "sort_by": "price", "sort_order": "asc"}

        # Instant-delivery gift cards between Rs.1K and Rs.5K, page 2
        {"category": ["gift_cards"], "price_min": 1000, "price_max": 5000,
         "is_instant_delivery": true, "page": 2, "limit": 12}
        ```

    Invalid queries (negative prices, min above max) get a 422 and no search is
    run. Zero matches is a normal, empty result.
    """
    return await service.search_products(request)


@router.get("/suggestions", response_model=SuggestionResponse)
async def search_suggestions(
    q: str = Query(..., description="Text typed so far"),
    engine: SuggestionEngine = Depends(get_suggestion_engine),
):
    """Autocomplete candidates for the search box (at most 5)."""
    return SuggestionResponse(query=q, suggestions=engine.suggest(q))
