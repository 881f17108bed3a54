"""Unit tests for the result aggregator state machine."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.errors import ExecutionError
from app.schemas.query import Facets, Query, SortDirection, SortField, SortSpec
from app.schemas.search import FetchDirectives, FetchResult
from app.services.memory_store import InMemoryProductStore
from app.services.result_aggregator import GridState, Phase, ResultAggregator, merge_items


class ControlledStore:
    """Store whose fetches resolve only when the test says so."""

    def __init__(self) -> None:
        self.calls: list[tuple[FetchDirectives, asyncio.Future]] = []

    async def execute(self, directives: FetchDirectives) -> FetchResult:
        future = asyncio.get_running_loop().create_future()
        self.calls.append((directives, future))
        return await future


def _ids(state: GridState) -> list[str]:
    return [item.id for item in state.items]


@pytest.fixture()
def twenty_store(make_product) -> InMemoryProductStore:
    return InMemoryProductStore([make_product(i, price=float(i)) for i in range(1, 21)])


@pytest.fixture()
def price_query() -> Query:
    return Query(sort=SortSpec(field=SortField.PRICE, direction=SortDirection.ASC), page=1, limit=12)


class TestReplace:
    @pytest.mark.asyncio
    async def test_first_page(self, twenty_store, price_query) -> None:
        aggregator = ResultAggregator(twenty_store)
        state = await aggregator.submit(price_query)

        assert state.phase == Phase.READY
        assert len(state.items) == 12
        assert state.page.has_next is True
        assert state.page.has_prev is False
        assert state.page.total_count == 20

    @pytest.mark.asyncio
    async def test_page_jump_replaces_results(self, twenty_store, price_query) -> None:
        aggregator = ResultAggregator(twenty_store)
        await aggregator.submit(price_query)
        state = await aggregator.go_to_page(2)

        assert len(state.items) == 8
        assert state.page.page == 2
        assert state.page.has_next is False
        assert state.page.has_prev is True
        assert _ids(state) == [f"p{i:03d}" for i in range(13, 21)]

    @pytest.mark.asyncio
    async def test_replace_goes_through_loading_with_nothing_shown(self, twenty_store, price_query) -> None:
        aggregator = ResultAggregator(twenty_store)
        await aggregator.submit(price_query)
        seen: list[GridState] = []
        aggregator.subscribe(seen.append)

        await aggregator.submit(price_query.model_copy(update={"text": "listing"}))

        assert [s.phase for s in seen] == [Phase.LOADING, Phase.READY]
        assert seen[0].items == ()

    @pytest.mark.asyncio
    async def test_same_query_is_not_fetched_twice(self, price_query) -> None:
        store = MagicMock()
        store.execute = AsyncMock(return_value=FetchResult(items=[], total_count=0))
        aggregator = ResultAggregator(store)

        await aggregator.submit(price_query)
        await aggregator.submit(price_query.model_copy())

        assert store.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_force_refetches(self, price_query) -> None:
        store = MagicMock()
        store.execute = AsyncMock(return_value=FetchResult(items=[], total_count=0))
        aggregator = ResultAggregator(store)

        await aggregator.submit(price_query)
        await aggregator.submit(price_query, force=True)

        assert store.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_result_is_not_an_error(self, twenty_store) -> None:
        aggregator = ResultAggregator(twenty_store)
        state = await aggregator.submit(Query(text="nothing matches this"))
        assert state.phase == Phase.READY
        assert state.items == ()
        assert state.page.total_count == 0
        assert state.error is None


class TestAppend:
    @pytest.mark.asyncio
    async def test_load_more_concatenates_in_order(self, twenty_store, price_query) -> None:
        aggregator = ResultAggregator(twenty_store)
        await aggregator.submit(price_query)
        state = await aggregator.load_more()

        assert state.phase == Phase.READY
        assert _ids(state) == [f"p{i:03d}" for i in range(1, 21)]
        assert state.page.page == 2
        assert state.page.total_count == 20
        assert state.page.has_next is False

    @pytest.mark.asyncio
    async def test_load_more_keeps_items_visible_while_loading(self, twenty_store, price_query) -> None:
        aggregator = ResultAggregator(twenty_store)
        await aggregator.submit(price_query)
        seen: list[GridState] = []
        aggregator.subscribe(seen.append)

        await aggregator.load_more()

        assert seen[0].phase == Phase.LOADING_MORE
        assert len(seen[0].items) == 12

    @pytest.mark.asyncio
    async def test_load_more_deduplicates_by_id(self, make_product, price_query) -> None:
        first = [make_product(i) for i in range(1, 13)]
        second = [make_product(12), make_product(13), make_product(14)]  # p012 shows up again
        store = MagicMock()
        store.execute = AsyncMock(
            side_effect=[FetchResult(items=first, total_count=15), FetchResult(items=second, total_count=15)]
        )
        aggregator = ResultAggregator(store)
        before = await aggregator.submit(price_query)
        after = await aggregator.load_more()

        duplicates = 1
        assert len(after.items) == len(before.items) + len(second) - duplicates
        assert _ids(after)[-2:] == ["p013", "p014"]

    @pytest.mark.asyncio
    async def test_load_more_without_next_page_is_noop(self, twenty_store) -> None:
        aggregator = ResultAggregator(twenty_store)
        state = await aggregator.submit(Query(limit=50))
        assert state.page.has_next is False
        assert await aggregator.load_more() is state

    @pytest.mark.asyncio
    async def test_load_more_before_any_results_is_noop(self, twenty_store) -> None:
        aggregator = ResultAggregator(twenty_store)
        state = await aggregator.load_more()
        assert state.phase == Phase.IDLE

    @pytest.mark.asyncio
    async def test_load_more_requests_next_window_of_same_query(self, price_query) -> None:
        store = MagicMock()
        store.execute = AsyncMock(return_value=FetchResult(items=[], total_count=30))
        aggregator = ResultAggregator(store)
        await aggregator.submit(price_query)
        await aggregator.load_more()

        directives = store.execute.await_args.args[0]
        assert directives.offset == 12
        assert directives.limit == 12
        assert directives.sort == price_query.sort


class TestStaleResponses:
    @pytest.mark.asyncio
    async def test_late_response_of_older_query_is_discarded(self, make_product) -> None:
        store = ControlledStore()
        aggregator = ResultAggregator(store)
        query_a = Query(text="alpha")
        query_b = Query(text="bravo")

        task_a = asyncio.create_task(aggregator.submit(query_a))
        await asyncio.sleep(0)
        task_b = asyncio.create_task(aggregator.submit(query_b))
        await asyncio.sleep(0)
        assert len(store.calls) == 2

        store.calls[1][1].set_result(FetchResult(items=[make_product(2)], total_count=1))
        await task_b
        store.calls[0][1].set_result(FetchResult(items=[make_product(1)], total_count=1))
        await task_a

        assert aggregator.state.query == query_b
        assert _ids(aggregator.state) == ["p002"]

    @pytest.mark.asyncio
    async def test_late_failure_of_older_query_is_discarded(self, make_product) -> None:
        store = ControlledStore()
        aggregator = ResultAggregator(store)

        task_a = asyncio.create_task(aggregator.submit(Query(text="alpha")))
        await asyncio.sleep(0)
        task_b = asyncio.create_task(aggregator.submit(Query(text="bravo")))
        await asyncio.sleep(0)

        store.calls[1][1].set_result(FetchResult(items=[make_product(2)], total_count=1))
        await task_b
        store.calls[0][1].set_exception(ExecutionError("timeout"))
        await task_a

        assert aggregator.state.phase == Phase.READY
        assert _ids(aggregator.state) == ["p002"]

    @pytest.mark.asyncio
    async def test_new_query_supersedes_pending_load_more(self, make_product) -> None:
        store = ControlledStore()
        aggregator = ResultAggregator(store)
        query = Query(limit=1)

        first = asyncio.create_task(aggregator.submit(query))
        await asyncio.sleep(0)
        store.calls[0][1].set_result(FetchResult(items=[make_product(1)], total_count=5))
        await first

        more = asyncio.create_task(aggregator.load_more())
        await asyncio.sleep(0)
        other = asyncio.create_task(aggregator.submit(Query(text="other", limit=1)))
        await asyncio.sleep(0)

        store.calls[2][1].set_result(FetchResult(items=[make_product(9)], total_count=1))
        await other
        store.calls[1][1].set_result(FetchResult(items=[make_product(2)], total_count=5))
        await more

        assert _ids(aggregator.state) == ["p009"]
        assert aggregator.state.query.text == "other"


class TestErrors:
    @pytest.mark.asyncio
    async def test_execution_failure_replaces_grid(self, make_product, price_query) -> None:
        store = MagicMock()
        store.execute = AsyncMock(
            side_effect=[
                FetchResult(items=[make_product(1)], total_count=30),
                ExecutionError("backend down"),
            ]
        )
        aggregator = ResultAggregator(store)
        await aggregator.submit(price_query)
        state = await aggregator.load_more()

        assert state.phase == Phase.ERROR
        assert state.items == ()
        assert isinstance(state.error, ExecutionError)
        assert state.error.query == price_query.model_copy(update={"page": 2})

    @pytest.mark.asyncio
    async def test_retry_reissues_same_query(self, make_product) -> None:
        store = MagicMock()
        store.execute = AsyncMock(
            side_effect=[ExecutionError("backend down"), FetchResult(items=[make_product(1)], total_count=1)]
        )
        query = Query(text="steam", facets=Facets(platform=["Steam"]))
        aggregator = ResultAggregator(store)

        failed = await aggregator.submit(query)
        assert failed.phase == Phase.ERROR
        recovered = await aggregator.retry()

        assert recovered.phase == Phase.READY
        assert recovered.query == query
        first_call, second_call = store.execute.await_args_list
        assert first_call.args[0] == second_call.args[0]

    @pytest.mark.asyncio
    async def test_retry_without_error_is_noop(self, twenty_store) -> None:
        aggregator = ResultAggregator(twenty_store)
        state = await aggregator.submit(Query())
        assert await aggregator.retry() is state

    @pytest.mark.asyncio
    async def test_invalid_query_never_reaches_store(self) -> None:
        store = MagicMock()
        store.execute = AsyncMock()
        aggregator = ResultAggregator(store)

        state = await aggregator.submit(Query(facets=Facets(price_min=500, price_max=100)))

        assert state.phase == Phase.ERROR
        assert state.error.code == "validation_error"
        store.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_untranslatable_query_never_reaches_store(self) -> None:
        store = MagicMock()
        store.execute = AsyncMock()
        aggregator = ResultAggregator(store)

        state = await aggregator.submit(
            Query(text="pubg", sort=SortSpec(field=SortField.RELEVANCE, direction=SortDirection.ASC))
        )

        assert state.error.code == "translation_error"
        store.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_execution_error(self) -> None:
        store = MagicMock()
        store.execute = AsyncMock(side_effect=RuntimeError("socket closed"))
        aggregator = ResultAggregator(store)

        state = await aggregator.submit(Query(text="x"))

        assert state.phase == Phase.ERROR
        assert isinstance(state.error, ExecutionError)
        assert isinstance(state.error.__cause__, RuntimeError)


class TestMergeItems:
    def test_keeps_order_and_skips_known_ids(self, make_product) -> None:
        a, b, c = make_product(1), make_product(2), make_product(3)
        assert [p.id for p in merge_items([a, b], [b, c])] == ["p001", "p002", "p003"]
