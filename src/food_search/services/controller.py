"""Consumer-facing search controller for one UI surface."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from food_search.domain.records import HistoryEntry, NutritionRecord
from food_search.domain.search import SearchState
from food_search.services.barcode import BarcodeLookupService
from food_search.services.debounce import QueryDebouncer
from food_search.services.history import HistoryService
from food_search.services.search import SearchOrchestrator

StateListener = Callable[[SearchState], None]
DeltaListener = Callable[[list[NutritionRecord]], None]

_logger = logging.getLogger(__name__)


@dataclass
class FoodSearchController:
    """Wires debouncing, searching, paging and history for one consumer."""

    orchestrator: SearchOrchestrator
    history_service: HistoryService
    barcode_service: BarcodeLookupService | None = None
    debounce_seconds: float = 0.5
    min_query_length: int = 3
    page_size: int = 15
    _state_listeners: list[StateListener] = field(default_factory=list, init=False)
    _delta_listeners: list[DeltaListener] = field(default_factory=list, init=False)
    _tasks: "set[asyncio.Task[object]]" = field(default_factory=set, init=False)
    _debouncer: QueryDebouncer = field(init=False)

    def __post_init__(self) -> None:
        self.orchestrator.on_change = self._emit_state
        self._debouncer = QueryDebouncer(
            on_settle=self._launch,
            on_clear=self.orchestrator.reset,
            delay_seconds=self.debounce_seconds,
            min_length=self.min_query_length,
        )

    @property
    def state(self) -> SearchState:
        return self.orchestrator.state

    def subscribe(
        self, on_state: StateListener, on_delta: DeltaListener | None = None
    ) -> Callable[[], None]:
        """Register listeners; returns a callable that unregisters them."""
        self._state_listeners.append(on_state)
        if on_delta is not None:
            self._delta_listeners.append(on_delta)

        def unsubscribe() -> None:
            if on_state in self._state_listeners:
                self._state_listeners.remove(on_state)
            if on_delta is not None and on_delta in self._delta_listeners:
                self._delta_listeners.remove(on_delta)

        return unsubscribe

    def on_text_change(self, text: str) -> None:
        """Feed a keystroke; searches once typing settles."""
        self._debouncer.on_text_change(text)

    def start_search(self, text: str) -> "asyncio.Task[object] | None":
        """Search immediately, skipping the debounce timer."""
        query = text.strip()
        if len(query) < self.min_query_length:
            self._debouncer.cancel()
            self.orchestrator.reset()
            return None
        self._debouncer.mark_settled(query)
        return self._launch(query)

    async def load_more(self) -> list[NutritionRecord]:
        """Append the next page of the current search."""
        if not self.state.can_load_more:
            return []
        return await self.orchestrator.next_page(
            self.state.query, page_size=self.page_size, on_page=self._emit_delta
        )

    def request_more(self) -> "asyncio.Task[object] | None":
        """Start loading the next page in the background."""
        if not self.state.can_load_more:
            return None
        return self._track(asyncio.get_running_loop().create_task(self.load_more()))

    def select(self, record: NutritionRecord) -> HistoryEntry:
        """Record that the user picked a result."""
        return self.history_service.record_selection(record)

    async def lookup_barcode(self, code: str) -> NutritionRecord | None:
        if self.barcode_service is None:
            return None
        return await self.barcode_service.lookup(code)

    async def wait_idle(self) -> None:
        """Wait for launched searches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending work and drop listeners."""
        self._debouncer.cancel()
        self.orchestrator.reset()
        await self.wait_idle()
        self._state_listeners.clear()
        self._delta_listeners.clear()

    def _launch(self, query: str) -> "asyncio.Task[object]":
        return self._track(
            asyncio.get_running_loop().create_task(
                self.orchestrator.search(query, self.page_size, self._emit_delta)
            )
        )

    def _track(self, task: "asyncio.Task[object]") -> "asyncio.Task[object]":
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: "asyncio.Task[object]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Search task failed", exc_info=exc)

    def _emit_state(self, state: SearchState) -> None:
        for listener in list(self._state_listeners):
            listener(state)

    def _emit_delta(self, records: list[NutritionRecord]) -> None:
        for listener in list(self._delta_listeners):
            listener(records)
