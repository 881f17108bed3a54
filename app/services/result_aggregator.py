"""Result aggregator: owns the displayed result set of one search surface.

Two fetch modes share one state:

- Replace: a new query or an explicit page jump. The current results are
  dropped, the grid shows a skeleton (``LOADING``) and the new page is
  installed wholesale.
- Append ("load more"): the next page of the query that produced the current
  results. Existing items stay visible (``LOADING_MORE``) and the new page is
  concatenated after them, skipping ids already shown.

Every dispatch takes a new generation number. A response is applied only if
its generation is still the latest when it resolves, so a slow older fetch can
never overwrite a newer one. In-flight fetches are not cancelled; their results
are dropped.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from app.core.errors import ExecutionError, QueryValidationError, SearchError, TranslationError
from app.schemas.product import Page, ProductSummary
from app.schemas.query import Query
from app.schemas.search import FetchDirectives
from app.services.predicate_translator import translate
from app.services.product_store import ProductStore

logger = logging.getLogger(__name__)


class FetchMode(str, Enum):
    REPLACE = "replace"
    APPEND = "append"


class Phase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"  # nothing shown, skeleton
    LOADING_MORE = "loading_more"  # existing items shown, inline progress
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ResultSet:
    """Items shown for ``query``, plus the metadata of the last page fetched."""

    query: Query
    items: tuple[ProductSummary, ...]
    page: Page


@dataclass(frozen=True)
class GridState:
    phase: Phase
    query: Query
    results: ResultSet | None = None
    error: SearchError | None = None
    generation: int = 0

    @property
    def items(self) -> tuple[ProductSummary, ...]:
        return self.results.items if self.results else ()

    @property
    def page(self) -> Page | None:
        return self.results.page if self.results else None

    @property
    def is_loading(self) -> bool:
        return self.phase in (Phase.LOADING, Phase.LOADING_MORE)


def merge_items(
    existing: Iterable[ProductSummary], incoming: Iterable[ProductSummary]
) -> tuple[ProductSummary, ...]:
    """Concatenate ``incoming`` after ``existing``, skipping ids already present."""
    merged = list(existing)
    seen = {item.id for item in merged}
    for item in incoming:
        if item.id not in seen:
            seen.add(item.id)
            merged.append(item)
    return tuple(merged)


Listener = Callable[[GridState], None]


class ResultAggregator:
    """
    Stateful controller for one grid.

    Args:
        store: Collaborator that executes fetch directives
        query: Initial query (nothing is fetched until ``submit``)
        translator: Query -> FetchDirectives function
    """

    def __init__(
        self,
        store: ProductStore,
        query: Query | None = None,
        translator: Callable[[Query], FetchDirectives] = translate,
    ):
        self._store = store
        self._translate = translator
        self._generation = 0
        self._listeners: list[Listener] = []
        self._state = GridState(phase=Phase.IDLE, query=query or Query.default())

    @property
    def state(self) -> GridState:
        return self._state

    @property
    def query(self) -> Query:
        return self._state.query

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` with every new state (loading phases included)."""
        self._listeners.append(listener)

    def _set_state(self, state: GridState) -> GridState:
        self._state = state
        for listener in self._listeners:
            listener(state)
        return state

    # ============================================================================
    # Operations
    # ============================================================================

    async def submit(self, query: Query, force: bool = False) -> GridState:
        """
        Show ``query`` (Replace fetch).

        Submitting the query that is already shown, or already loading, is a
        no-op unless ``force`` is set.
        """
        current = self._state
        if not force and query == current.query and current.phase in (Phase.READY, Phase.LOADING):
            return current
        return await self._dispatch(query, FetchMode.REPLACE)

    async def go_to_page(self, page: int) -> GridState:
        """Jump to ``page`` of the current query (Replace fetch)."""
        if page < 1:
            raise QueryValidationError(f"page must be >= 1 (got {page})", detail={"page": page})
        query = self._state.query.model_copy(update={"page": page})
        return await self._dispatch(query, FetchMode.REPLACE)

    async def load_more(self) -> GridState:
        """
        Append the next page of the query behind the current results.

        Ignored while a fetch is in flight, after an error, or when there is no
        next page.
        """
        current = self._state
        if current.phase != Phase.READY or current.results is None:
            return current
        if not current.results.page.has_next:
            return current

        next_query = current.results.query.model_copy(update={"page": current.results.page.page + 1})
        return await self._dispatch(next_query, FetchMode.APPEND)

    async def retry(self) -> GridState:
        """Re-issue the failed query unchanged (Replace fetch)."""
        current = self._state
        if current.phase != Phase.ERROR:
            return current
        return await self._dispatch(current.query, FetchMode.REPLACE)

    # ============================================================================
    # Fetch
    # ============================================================================

    async def _dispatch(self, query: Query, mode: FetchMode) -> GridState:
        self._generation += 1
        generation = self._generation
        previous = self._state

        try:
            directives = self._translate(query)
        except (QueryValidationError, TranslationError) as e:
            logger.warning(f"Query rejected before fetch: {e.message}")
            return self._set_state(GridState(phase=Phase.ERROR, query=query, error=e, generation=generation))

        if mode == FetchMode.APPEND:
            self._set_state(
                GridState(phase=Phase.LOADING_MORE, query=query, results=previous.results, generation=generation)
            )
        else:
            self._set_state(GridState(phase=Phase.LOADING, query=query, generation=generation))

        logger.debug(f"Dispatching {mode.value} fetch #{generation} (page {query.page})")

        try:
            result = await self._store.execute(directives)
        except Exception as e:
            if generation != self._generation:
                logger.info(f"Discarding failure of superseded fetch #{generation}: {e}")
                return self._state
            if isinstance(e, ExecutionError):
                error = e.with_query(query)
            else:
                logger.exception(f"Unexpected failure in fetch #{generation}")
                error = ExecutionError(f"Fetch failed: {e}", query=query)
                error.__cause__ = e
            logger.error(f"Fetch #{generation} failed: {error.message}")
            return self._set_state(GridState(phase=Phase.ERROR, query=query, error=error, generation=generation))

        if generation != self._generation:
            logger.info(f"Discarding stale response of fetch #{generation} (latest is #{self._generation})")
            return self._state

        page = Page(page=query.page, limit=query.limit, total_count=result.total_count)
        if mode == FetchMode.APPEND and previous.results is not None:
            items = merge_items(previous.results.items, result.items)
        else:
            items = tuple(result.items)

        logger.debug(f"Fetch #{generation} applied: {len(result.items)} new, {len(items)} shown, total {result.total_count}")
        return self._set_state(
            GridState(
                phase=Phase.READY,
                query=query,
                results=ResultSet(query=query, items=items, page=page),
                generation=generation,
            )
        )
