from typing import Any

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from app.core.config import settings
from app.schemas.product import Page, ProductSummary
from app.schemas.query import PartialQuery, Query
from app.services import filter_composer
from app.services.product_store import ProductStore
from app.services.result_aggregator import GridState, Phase
from app.services.search_service import get_product_store
from app.services.search_session import SearchSession, SearchSessionRegistry, get_session_registry

router = APIRouter(prefix="/sessions", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    """A new search surface, optionally starting from some filters"""

    limit: int = Field(default=settings.GRID_PAGE_LIMIT, gt=0, le=settings.MAX_PAGE_LIMIT)
    initial: PartialQuery | None = None


class SelectSuggestionRequest(BaseModel):
    suggestion: str = Field(..., min_length=1)


class SessionStateResponse(BaseModel):
    """What a grid should render right now"""

    session_id: str
    phase: Phase
    query: Query
    products: list[ProductSummary]
    page: Page | None = None
    error: dict[str, Any] | None = None


def to_response(session: SearchSession, state: GridState) -> SessionStateResponse:
    return SessionStateResponse(
        session_id=session.id,
        phase=state.phase,
        query=state.query,
        products=list(state.items),
        page=state.page,
        error=state.error.to_dict() if state.error else None,
    )


def get_session(
    session_id: str,
    registry: SearchSessionRegistry = Depends(get_session_registry),
) -> SearchSession:
    return registry.get(session_id)


@router.post("", response_model=SessionStateResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    registry: SearchSessionRegistry = Depends(get_session_registry),
    store: ProductStore = Depends(get_product_store),
):
    """Create a search session and fetch its first page."""
    query = Query.default(limit=request.limit)
    if request.initial is not None:
        # Reject a bad initial patch before a session exists for it
        query = filter_composer.apply(query, request.initial)

    session = registry.create(store, limit=request.limit)
    state = await session.start(query)
    return to_response(session, state)


@router.get("/{session_id}", response_model=SessionStateResponse)
async def get_session_state(session: SearchSession = Depends(get_session)):
    return to_response(session, session.state)


@router.patch("/{session_id}/query", response_model=SessionStateResponse)
async def update_query(patch: PartialQuery, session: SearchSession = Depends(get_session)):
    """
    Change text, toggle a facet value, set a price bracket, sort or clear.

    Example: `{"category": "game_accounts"}` toggles that category;
    `{"price_bracket": "1k_5k"}` sets both price bounds; `{"clear": true}`
    resets everything.
    """
    state = await session.update(patch)
    return to_response(session, state)


@router.post("/{session_id}/suggestions/select", response_model=SessionStateResponse)
async def select_suggestion(request: SelectSuggestionRequest, session: SearchSession = Depends(get_session)):
    """Search for a suggestion immediately."""
    state = await session.select_suggestion(request.suggestion)
    return to_response(session, state)


@router.post("/{session_id}/load-more", response_model=SessionStateResponse)
async def load_more(session: SearchSession = Depends(get_session)):
    """Append the next page to the current results."""
    state = await session.load_more()
    return to_response(session, state)


@router.post("/{session_id}/pages/{page}", response_model=SessionStateResponse)
async def go_to_page(page: int, session: SearchSession = Depends(get_session)):
    """Replace the results with another page of the same query."""
    state = await session.go_to_page(page)
    return to_response(session, state)


@router.post("/{session_id}/retry", response_model=SessionStateResponse)
async def retry(session: SearchSession = Depends(get_session)):
    """Re-run the query that failed."""
    state = await session.retry()
    return to_response(session, state)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    registry: SearchSessionRegistry = Depends(get_session_registry),
):
    registry.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
