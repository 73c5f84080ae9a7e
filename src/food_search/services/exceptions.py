"""Search error taxonomy."""

from food_search.domain.records import Source

SEARCH_UNAVAILABLE_MESSAGE = "Search is unavailable right now."


class SearchError(Exception):
    pass


class ProviderError(SearchError):
    """A single provider failed; it contributes zero records."""

    def __init__(
        self, source: Source, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(f"{source.value}: {message}")
        self.source = source
        self.status_code = status_code


class SessionCancelled(SearchError):
    """The session was superseded; its work must not touch shared state."""


class AllProvidersFailed(SearchError):
    """Every provider queried for a page failed."""

    def __init__(self, errors: list[ProviderError]) -> None:
        super().__init__(SEARCH_UNAVAILABLE_MESSAGE)
        self.errors = errors
