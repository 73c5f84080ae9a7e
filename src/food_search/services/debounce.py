"""Keystroke debouncing for search input."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class QueryDebouncer:
    """Turns raw keystrokes into settled queries.

    Short queries clear results immediately and never schedule a search.
    Longer ones restart a timer; only the latest timer fires, and it
    fires ``on_settle`` once per distinct settled value.
    """

    on_settle: Callable[[str], object]
    on_clear: Callable[[], object]
    delay_seconds: float = 0.5
    min_length: int = 3
    _timer: "asyncio.Task[None] | None" = field(default=None, init=False, repr=False)
    _last_settled: str | None = field(default=None, init=False, repr=False)

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def last_settled(self) -> str | None:
        return self._last_settled

    def on_text_change(self, raw: str) -> None:
        """Handle a text change; must be called from a running event loop."""
        text = raw.strip()
        self.cancel()
        if len(text) < self.min_length:
            self._last_settled = None
            self.on_clear()
            return
        self._timer = asyncio.get_running_loop().create_task(self._settle_later(text))

    def mark_settled(self, text: str) -> None:
        """Record a query that was searched without waiting for the timer."""
        self.cancel()
        self._last_settled = text.strip()

    def cancel(self) -> None:
        """Drop the pending timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _settle_later(self, text: str) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._timer = None
        if text == self._last_settled:
            return
        self._last_settled = text
        self.on_settle(text)
