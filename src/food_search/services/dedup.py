"""Session-scoped identity resolution across pages and providers."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from food_search.domain.records import NutritionRecord, Source


def content_key(record: NutritionRecord) -> str:
    """Derive an identity string from normalized name, brand and macros."""
    parts = (
        record.name,
        record.brand,
        f"{record.calories:g}",
        f"{record.protein:g}",
        f"{record.carbs:g}",
        f"{record.fat:g}",
    )
    return "|".join(parts).lower()


def source_key(record: NutritionRecord) -> tuple[Source, int] | None:
    """Return the provider-native identity, when the provider has one."""
    if record.source.has_stable_ids and record.source_id is not None:
        return (record.source, record.source_id)
    return None


@dataclass
class Deduplicator:
    """Tracks seen identities for one search session.

    A record is a repeat when either its native id or its content key
    was already admitted. Callers must not await between checking and
    admitting; all mutation happens on the event-loop thread.
    """

    seen_source_ids: set[tuple[Source, int]] = field(default_factory=set)
    seen_content_keys: set[str] = field(default_factory=set)

    def admit(self, record: NutritionRecord) -> bool:
        """Record a new identity and return true, or return false for a repeat."""
        native = source_key(record)
        if native is not None and native in self.seen_source_ids:
            return False
        key = content_key(record)
        if key in self.seen_content_keys:
            return False
        if native is not None:
            self.seen_source_ids.add(native)
        self.seen_content_keys.add(key)
        return True

    def admit_all(self, records: Iterable[NutritionRecord]) -> list[NutritionRecord]:
        """Return the records not seen before, admitting them."""
        return [record for record in records if self.admit(record)]

    def reset(self) -> None:
        self.seen_source_ids.clear()
        self.seen_content_keys.clear()
