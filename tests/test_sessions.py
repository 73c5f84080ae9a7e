"""Tests for search sessions and pagination bookkeeping."""

import asyncio

import pytest

from food_search.services.exceptions import SessionCancelled
from food_search.services.pagination import PaginationManager
from food_search.services.sessions import CancelScope, PageOutcome, SearchSession
from tests.conftest import make_record


def test_cancel_scope_cancels_spawned_tasks() -> None:
    async def scenario() -> tuple[bool, bool]:
        scope = CancelScope()
        task = scope.spawn(asyncio.sleep(10))
        await asyncio.sleep(0)
        scope.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return scope.cancelled, task.cancelled()

    cancelled, task_cancelled = asyncio.run(scenario())

    assert cancelled is True
    assert task_cancelled is True


def test_cancel_scope_refuses_work_once_cancelled() -> None:
    async def scenario() -> None:
        scope = CancelScope()
        scope.cancel()
        with pytest.raises(SessionCancelled):
            scope.spawn(asyncio.sleep(0))
        with pytest.raises(SessionCancelled):
            scope.raise_if_cancelled()

    asyncio.run(scenario())


def test_record_page_only_closes_on_empty_raw_page() -> None:
    session = SearchSession(query_text="pear")

    session.record_page(5)
    assert session.has_more is True

    session.record_page(0)
    assert session.has_more is False

    session.record_page(5)
    assert session.has_more is False


def _fetcher(raw_counts: dict[int, int], seen: list[int]):  # type: ignore[no-untyped-def]
    async def fetch(session, page_number, page_size, on_delta):  # type: ignore[no-untyped-def]
        seen.append(page_number)
        raw = raw_counts.get(page_number, 0)
        session.record_page(raw)
        delta = [make_record(f"pear {page_number}")] if raw else []
        return PageOutcome(
            page_number=page_number,
            raw_count=raw,
            delta=delta,
            failures=[],
            queried=2,
        )

    return fetch


def test_next_page_advances_cursor_until_exhausted() -> None:
    seen: list[int] = []
    manager = PaginationManager(fetch_page=_fetcher({2: 4, 3: 2}, seen))
    session = SearchSession(query_text="pear")

    async def scenario() -> list[list[str]]:
        deltas = []
        for _ in range(4):
            delta = await manager.next_page(session)
            deltas.append([record.name for record in delta])
        return deltas

    deltas = asyncio.run(scenario())

    assert seen == [2, 3, 4]
    assert deltas == [["pear 2"], ["pear 3"], [], []]
    assert session.page_cursor == 4
    assert session.has_more is False


def test_explicit_page_number_does_not_move_cursor_back() -> None:
    seen: list[int] = []
    manager = PaginationManager(fetch_page=_fetcher({2: 1, 5: 1}, seen))
    session = SearchSession(query_text="pear", page_cursor=5)

    asyncio.run(manager.next_page(session, page_number=2))

    assert seen == [2]
    assert session.page_cursor == 5


def test_cannot_advance_while_in_flight_or_cancelled() -> None:
    session = SearchSession(query_text="pear")
    assert PaginationManager.can_advance(session)

    session.page_in_flight = True
    assert not PaginationManager.can_advance(session)

    session.page_in_flight = False
    session.scope.cancel()
    assert not PaginationManager.can_advance(session)


def test_in_flight_flag_is_cleared_after_failure() -> None:
    async def failing(session, page_number, page_size, on_delta):  # type: ignore[no-untyped-def]
        raise SessionCancelled()

    manager = PaginationManager(fetch_page=failing)
    session = SearchSession(query_text="pear")

    with pytest.raises(SessionCancelled):
        asyncio.run(manager.next_page(session))

    assert session.page_in_flight is False
    assert session.page_cursor == 1
