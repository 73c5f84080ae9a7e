"""Page-cursor bookkeeping for "load more"."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from food_search.domain.records import NutritionRecord
from food_search.services.sessions import PageOutcome, SearchSession

DeltaCallback = Callable[[list[NutritionRecord]], None]
PageFetcher = Callable[
    [SearchSession, int, int, DeltaCallback | None], Awaitable[PageOutcome]
]

_logger = logging.getLogger(__name__)


@dataclass
class PaginationManager:
    """Advances a session's 1-based page cursor, one page at a time."""

    fetch_page: PageFetcher

    @staticmethod
    def can_advance(session: SearchSession) -> bool:
        """Return true when another page may be requested now."""
        return (
            session.has_more
            and not session.page_in_flight
            and not session.scope.cancelled
        )

    async def next_page(
        self,
        session: SearchSession,
        page_number: int | None = None,
        page_size: int = 15,
        on_page: DeltaCallback | None = None,
    ) -> list[NutritionRecord]:
        """Fetch the next page through the session's filter/dedup path.

        Returns the delta, which may be empty when every record on the
        page was filtered out or already shown.
        """
        if not self.can_advance(session):
            return []
        number = page_number or session.page_cursor + 1
        session.page_in_flight = True
        try:
            outcome = await self.fetch_page(session, number, page_size, on_page)
        finally:
            session.page_in_flight = False
        session.page_cursor = max(session.page_cursor, number)
        _logger.debug(
            "Page fetched: query=%s page=%s raw=%s delta=%s has_more=%s",
            session.query_text,
            number,
            outcome.raw_count,
            len(outcome.delta),
            session.has_more,
        )
        return outcome.delta
