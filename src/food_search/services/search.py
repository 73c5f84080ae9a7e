"""Progressive multi-provider search orchestration."""

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field

from food_search.domain.records import NutritionRecord
from food_search.domain.search import SearchState
from food_search.services.exceptions import (
    AllProvidersFailed,
    ProviderError,
    SessionCancelled,
)
from food_search.services.filters import ResultFilterPipeline
from food_search.services.pagination import DeltaCallback, PaginationManager
from food_search.services.providers import ProviderClient
from food_search.services.sessions import PageOutcome, SearchSession

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ProviderResult:
    raw_count: int = 0
    error: ProviderError | None = None


@dataclass
class SearchOrchestrator:
    """Owns the single live search session of one UI surface.

    Starting a search cancels the previous session's scope. Each
    provider's page is filtered and deduplicated against the session as
    soon as it arrives, and the surviving delta is appended to the state
    and handed to the caller's callback.
    """

    providers: list[ProviderClient]
    filter_pipeline: ResultFilterPipeline = field(default_factory=ResultFilterPipeline)
    page_size: int = 15
    state: SearchState = field(default_factory=SearchState)
    on_change: Callable[[SearchState], None] | None = None
    pagination: PaginationManager = field(init=False)
    _session: SearchSession | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.pagination = PaginationManager(fetch_page=self.fetch_page)

    @property
    def session(self) -> SearchSession | None:
        return self._session

    def is_current(self, session: SearchSession) -> bool:
        """Return true while the session is the live, uncancelled one."""
        return session is self._session and not session.scope.cancelled

    async def search(
        self,
        query: str,
        page_size: int | None = None,
        on_partial: DeltaCallback | None = None,
    ) -> SearchSession | None:
        """Start a new session for a query and stream its first page.

        Returns the session, or None when it was superseded before the
        first page completed. When every provider fails the session is
        ended and ``state.error`` is set.
        """
        text = query.strip()
        self._supersede()
        if not text:
            self.reset()
            return None
        session = SearchSession(query_text=text)
        self._session = session
        self.state.query = text
        self.state.results = []
        self.state.loading = True
        self.state.loading_more = False
        self.state.searching = True
        self.state.has_more = True
        self.state.error = None
        self._notify()

        session.page_in_flight = True
        try:
            await self.fetch_page(session, 1, page_size or self.page_size, on_partial)
        except SessionCancelled:
            _logger.debug("Search superseded: query=%s", text)
            return None
        except AllProvidersFailed as exc:
            _logger.warning("All providers failed: query=%s", text)
            self._supersede()
            self.state.error = str(exc)
            self.state.loading = False
            self.state.searching = False
            self.state.has_more = False
            self._notify()
            return session
        finally:
            session.page_in_flight = False
        self.state.loading = False
        self.state.searching = False
        self.state.has_more = session.has_more
        self._notify()
        return session

    async def next_page(
        self,
        query: str,
        page_number: int | None = None,
        page_size: int | None = None,
        on_page: DeltaCallback | None = None,
    ) -> list[NutritionRecord]:
        """Fetch and append the next page of the live session."""
        session = self._session
        if session is None or session.query_text != query.strip():
            return []
        if not self.pagination.can_advance(session):
            return []
        self.state.loading_more = True
        self.state.error = None
        self._notify()
        try:
            return await self.pagination.next_page(
                session, page_number, page_size or self.page_size, on_page
            )
        except SessionCancelled:
            return []
        except AllProvidersFailed as exc:
            _logger.warning(
                "All providers failed: query=%s page=%s", query, page_number
            )
            if self.is_current(session):
                self.state.error = str(exc)
            return []
        finally:
            if self.is_current(session):
                self.state.loading_more = False
                self.state.has_more = session.has_more
                self._notify()

    async def fetch_page(
        self,
        session: SearchSession,
        page_number: int,
        page_size: int,
        on_delta: DeltaCallback | None = None,
    ) -> PageOutcome:
        """Query every non-exhausted provider concurrently for one page."""
        session.scope.raise_if_cancelled()
        per_provider = max(1, math.ceil(page_size / max(1, len(self.providers))))
        active = [
            provider
            for provider in self.providers
            if provider.source not in session.exhausted_sources
        ]
        delta: list[NutritionRecord] = []

        def collect(records: list[NutritionRecord]) -> None:
            delta.extend(records)
            if on_delta is not None:
                on_delta(records)

        tasks = [
            session.scope.spawn(
                self._fetch_provider(
                    session, provider, per_provider, page_number, collect
                )
            )
            for provider in active
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        if not self.is_current(session):
            raise SessionCancelled()
        for result in results:
            if isinstance(result, BaseException):
                raise result

        failures = [result.error for result in results if result.error]
        raw_count = sum(result.raw_count for result in results)
        if active and len(failures) == len(active):
            raise AllProvidersFailed(failures)
        session.record_page(raw_count)
        return PageOutcome(
            page_number=page_number,
            raw_count=raw_count,
            delta=delta,
            failures=failures,
            queried=len(active),
        )

    def reset(self) -> None:
        """Cancel the live session and clear the visible state."""
        self._supersede()
        self.state.query = ""
        self.state.results = []
        self.state.loading = False
        self.state.loading_more = False
        self.state.searching = False
        self.state.has_more = False
        self.state.error = None
        self._notify()

    async def _fetch_provider(
        self,
        session: SearchSession,
        provider: ProviderClient,
        page_size: int,
        page_number: int,
        on_delta: DeltaCallback,
    ) -> _ProviderResult:
        try:
            page = await provider.search(session.query_text, page_size, page_number)
        except ProviderError as exc:
            _logger.warning(
                "Provider %s failed: query=%s page=%s error=%s",
                provider.source.value,
                session.query_text,
                page_number,
                exc,
            )
            return _ProviderResult(error=exc)
        if not self.is_current(session):
            return _ProviderResult()

        if page.raw_count == 0 or page.has_more_hint is False:
            session.exhausted_sources.add(provider.source)
        accepted = self.filter_pipeline.filter_page(page.records)
        delta = session.deduplicator.admit_all(accepted)
        if delta:
            self.state.results.extend(delta)
            self.state.loading = False
            on_delta(delta)
            self._notify()
        return _ProviderResult(raw_count=page.raw_count)

    def _supersede(self) -> None:
        if self._session is not None:
            self._session.scope.cancel()
            self._session = None

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state.snapshot())
