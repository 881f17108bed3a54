"""Search sessions: one search surface each (query + results + suggestions)."""

import logging
import uuid
from collections import OrderedDict
from functools import lru_cache

from app.core.config import settings
from app.core.errors import NotFoundError
from app.schemas.query import PartialQuery, Query
from app.services import filter_composer
from app.services.product_store import ProductStore
from app.services.result_aggregator import GridState, ResultAggregator
from app.services.suggestion_engine import SuggestionEngine, get_suggestion_engine

logger = logging.getLogger(__name__)


class SearchSession:
    """
    Ties user events to the core.

    Edits go through the filter composer and the resulting query is handed to
    this session's own aggregator. Sessions share nothing with each other.
    """

    def __init__(
        self,
        store: ProductStore,
        limit: int = settings.GRID_PAGE_LIMIT,
        suggestion_engine: SuggestionEngine | None = None,
        session_id: str | None = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.aggregator = ResultAggregator(store, Query.default(limit=limit))
        self.suggestion_engine = suggestion_engine or get_suggestion_engine()

    @property
    def state(self) -> GridState:
        return self.aggregator.state

    @property
    def query(self) -> Query:
        return self.aggregator.query

    async def start(self, query: Query | None = None) -> GridState:
        """Fetch the first page of ``query`` (default: the current query)."""
        return await self.aggregator.submit(query or self.aggregator.query, force=True)

    async def update(self, patch: PartialQuery) -> GridState:
        """
        Apply a partial update and show the resulting query.

        Raises:
            QueryValidationError: the patch is inconsistent; nothing is fetched
                and the displayed results are untouched
        """
        query = filter_composer.apply(self.aggregator.query, patch)
        return await self.aggregator.submit(query)

    async def clear(self) -> GridState:
        return await self.update(PartialQuery(clear=True))

    def suggest(self, text: str) -> list[str]:
        return self.suggestion_engine.suggest(text)

    async def select_suggestion(self, suggestion: str) -> GridState:
        """Search for ``suggestion`` right away."""
        query = filter_composer.apply(self.aggregator.query, PartialQuery(text=suggestion))
        return await self.aggregator.submit(query, force=True)

    async def load_more(self) -> GridState:
        return await self.aggregator.load_more()

    async def go_to_page(self, page: int) -> GridState:
        return await self.aggregator.go_to_page(page)

    async def retry(self) -> GridState:
        return await self.aggregator.retry()


class SearchSessionRegistry:
    """In-process session registry; the oldest session is evicted when full."""

    def __init__(self, max_sessions: int = settings.MAX_SEARCH_SESSIONS):
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, SearchSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, store: ProductStore, limit: int = settings.GRID_PAGE_LIMIT) -> SearchSession:
        session = SearchSession(store, limit=limit)
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted search session {evicted_id}")
        return session

    def get(self, session_id: str) -> SearchSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Search session {session_id} not found", detail={"session_id": session_id})
        self._sessions.move_to_end(session_id)
        return session

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise NotFoundError(f"Search session {session_id} not found", detail={"session_id": session_id})


@lru_cache
def get_session_registry() -> SearchSessionRegistry:
    """Get cached session registry instance"""
    return SearchSessionRegistry()
