"""Recently selected foods, ranked by frequency then recency."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from food_search.domain.records import HistoryEntry, NutritionRecord
from food_search.services.dedup import content_key


class HistoryRepository(Protocol):
    """Persistence interface for selection history."""

    def get_entry(self, key: str) -> HistoryEntry | None:
        """Return the entry for a content key, if present."""

    def upsert_entry(self, entry: HistoryEntry) -> None:
        """Create or replace an entry by its key."""

    def list_entries(self) -> list[HistoryEntry]:
        """Return all stored entries in no particular order."""

    def delete_entries(self, keys: list[str]) -> None:
        """Delete entries by key."""


@dataclass
class InMemoryHistoryRepository(HistoryRepository):
    """Process-local history store."""

    entries: dict[str, HistoryEntry] = field(default_factory=dict)

    def get_entry(self, key: str) -> HistoryEntry | None:
        return self.entries.get(key)

    def upsert_entry(self, entry: HistoryEntry) -> None:
        self.entries[entry.key] = entry

    def list_entries(self) -> list[HistoryEntry]:
        return list(self.entries.values())

    def delete_entries(self, keys: list[str]) -> None:
        for key in keys:
            self.entries.pop(key, None)


@dataclass
class HistoryService:
    """Records selections keyed by the same content key as deduplication."""

    repository: HistoryRepository
    max_entries: int = 100

    def record_selection(self, record: NutritionRecord) -> HistoryEntry:
        """Count a selection and trim the history to its size limit."""
        key = content_key(record)
        existing = self.repository.get_entry(key)
        entry = HistoryEntry(
            key=key,
            record=record,
            count=existing.count + 1 if existing else 1,
            last_used_at=datetime.now(tz=UTC),
        )
        self.repository.upsert_entry(entry)
        ranked = self._rank(self.repository.list_entries())
        overflow = [item.key for item in ranked[self.max_entries :]]
        if overflow:
            self.repository.delete_entries(overflow)
        return entry

    def get_history(self, limit: int | None = None) -> list[HistoryEntry]:
        """Return entries, most used first."""
        ranked = self._rank(self.repository.list_entries())
        return ranked if limit is None else ranked[:limit]

    def search_history(self, query: str) -> list[NutritionRecord]:
        """Return previously selected records whose name or brand matches."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            entry.record
            for entry in self.get_history()
            if needle in entry.record.name.lower()
            or needle in entry.record.brand.lower()
        ]

    @staticmethod
    def _rank(entries: list[HistoryEntry]) -> list[HistoryEntry]:
        """Rank entries by use count then last use."""
        return sorted(
            entries,
            key=lambda entry: (entry.count, entry.last_used_at),
            reverse=True,
        )
