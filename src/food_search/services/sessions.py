"""Search session state and cooperative cancellation."""

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, TypeVar

from food_search.domain.records import NutritionRecord, Source
from food_search.services.dedup import Deduplicator
from food_search.services.exceptions import ProviderError, SessionCancelled

_T = TypeVar("_T")


class CancelScope:
    """Unit of work invalidated when a session is superseded.

    Tasks spawned through the scope are cancelled with it, which aborts
    their HTTP requests. Cancellation of a task is not guaranteed to be
    observed immediately, so handlers must still check ``cancelled``
    before touching shared state.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def spawn(self, coro: Coroutine[Any, Any, _T]) -> "asyncio.Task[_T]":
        """Run a coroutine as a task owned by this scope."""
        if self._cancelled:
            coro.close()
            raise SessionCancelled()
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self) -> None:
        """Mark the scope inert and cancel every task it still owns."""
        self._cancelled = True
        for task in list(self._tasks):
            task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SessionCancelled()


@dataclass
class SearchSession:
    """Lifetime of one settled query and its pagination/dedup state."""

    query_text: str
    scope: CancelScope = field(default_factory=CancelScope)
    page_cursor: int = 1
    has_more: bool = True
    page_in_flight: bool = False
    deduplicator: Deduplicator = field(default_factory=Deduplicator)
    exhausted_sources: set[Source] = field(default_factory=set)

    def record_page(self, raw_count: int) -> None:
        """Close pagination once a page comes back with no raw records.

        A page whose records were all filtered out keeps pagination
        open: later pages may still hold acceptable records.
        """
        if raw_count == 0:
            self.has_more = False


@dataclass(frozen=True)
class PageOutcome:
    """Result of fetching one page across providers."""

    page_number: int
    raw_count: int
    delta: list[NutritionRecord]
    failures: list[ProviderError]
    queried: int
