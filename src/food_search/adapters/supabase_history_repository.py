"""Supabase implementation for food selection history."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from food_search.domain.records import HistoryEntry, NutritionRecord, Source, Unit
from food_search.services.history import HistoryRepository

_TABLE = "food_search_history"


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase-backed repository for selection history."""

    client: Client

    def get_entry(self, key: str) -> HistoryEntry | None:
        """Return the entry for a content key, if present."""
        response = (
            self.client.table(_TABLE).select("*").eq("key", key).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def upsert_entry(self, entry: HistoryEntry) -> None:
        """Create or replace an entry by its key."""
        record = entry.record
        self.client.table(_TABLE).upsert(
            {
                "key": entry.key,
                "name": record.name,
                "brand": record.brand,
                "calories": record.calories,
                "protein": record.protein,
                "carbs": record.carbs,
                "fat": record.fat,
                "serving_size": record.serving_size,
                "unit": record.unit.value,
                "source": record.source.value,
                "source_id": record.source_id,
                "use_count": entry.count,
                "last_used_at": entry.last_used_at.isoformat(),
            },
            on_conflict="key",
        ).execute()

    def list_entries(self) -> list[HistoryEntry]:
        """Return all stored entries."""
        response = self.client.table(_TABLE).select("*").execute()
        return [_parse_entry(row) for row in response.data or []]

    def delete_entries(self, keys: list[str]) -> None:
        """Delete entries by key."""
        if not keys:
            return
        self.client.table(_TABLE).delete().in_("key", keys).execute()


def _parse_entry(row: dict[str, object]) -> HistoryEntry:
    source_id = row.get("source_id")
    record = NutritionRecord(
        name=str(row.get("name", "")),
        brand=str(row.get("brand") or ""),
        calories=float(row.get("calories", 0.0)),
        protein=float(row.get("protein", 0.0)),
        carbs=float(row.get("carbs", 0.0)),
        fat=float(row.get("fat", 0.0)),
        serving_size=str(row.get("serving_size") or ""),
        unit=Unit(row.get("unit") or Unit.GRAMS.value),
        source=Source(row["source"]),
        source_id=int(source_id) if source_id is not None else None,
    )
    return HistoryEntry(
        key=str(row["key"]),
        record=record,
        count=int(row.get("use_count", 0)),
        last_used_at=datetime.fromisoformat(str(row["last_used_at"])),
    )
