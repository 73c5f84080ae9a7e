"""Domain models for normalized food records."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Source(Enum):
    """External nutrition databases a record can come from."""

    USDA = "usda"
    OPEN_FOOD_FACTS = "open_food_facts"

    @property
    def has_stable_ids(self) -> bool:
        """Return true when the provider's native id identifies a product."""
        return self in _ID_BEARING_SOURCES


_ID_BEARING_SOURCES = frozenset({Source.USDA, Source.OPEN_FOOD_FACTS})


class Unit(Enum):
    """Basis unit for a record's nutrition values."""

    GRAMS = "g"
    MILLILITERS = "ml"


@dataclass(frozen=True)
class NutritionRecord:
    """One normalized food entry, values per serving basis."""

    name: str
    brand: str
    calories: float
    protein: float
    carbs: float
    fat: float
    serving_size: str
    unit: Unit
    source: Source
    source_id: int | None = None


@dataclass(frozen=True)
class ProviderPage:
    """A page of mapped records as returned by one provider."""

    records: list[NutritionRecord]
    has_more_hint: bool | None = None

    @property
    def raw_count(self) -> int:
        """Number of records before any filtering."""
        return len(self.records)


@dataclass(frozen=True)
class HistoryEntry:
    """A previously selected record with usage counters."""

    key: str
    record: NutritionRecord
    count: int
    last_used_at: datetime
