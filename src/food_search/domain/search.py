"""Domain models for search state and filter outcomes."""

from dataclasses import dataclass, field
from enum import Enum

from food_search.domain.records import NutritionRecord


class RejectReason(Enum):
    """Why a record was dropped by the result filter."""

    TOO_SHORT = "too_short"
    PLACEHOLDER = "placeholder"
    PROFANITY = "profanity"
    JUNK = "junk"
    NON_LATIN = "non_latin"
    LOW_ALPHA = "low_alpha"
    IMPLAUSIBLE_NUTRITION = "implausible_nutrition"


@dataclass(frozen=True)
class FilterDecision:
    """Accept carrying the normalized record, or reject with a reason."""

    record: NutritionRecord | None
    reason: RejectReason | None = None

    @property
    def accepted(self) -> bool:
        return self.reason is None

    @classmethod
    def accept(cls, record: NutritionRecord) -> "FilterDecision":
        return cls(record=record)

    @classmethod
    def reject(cls, reason: RejectReason) -> "FilterDecision":
        return cls(record=None, reason=reason)


@dataclass
class SearchState:
    """Observable state of one search surface."""

    query: str = ""
    results: list[NutritionRecord] = field(default_factory=list)
    loading: bool = False
    loading_more: bool = False
    searching: bool = False
    has_more: bool = False
    error: str | None = None

    @property
    def can_load_more(self) -> bool:
        """Return true when a "load more" action should be offered."""
        return (
            bool(self.query)
            and self.has_more
            and not self.searching
            and not self.loading_more
        )

    def snapshot(self) -> "SearchState":
        """Return a copy that is safe to hand to listeners."""
        return SearchState(
            query=self.query,
            results=list(self.results),
            loading=self.loading,
            loading_more=self.loading_more,
            searching=self.searching,
            has_more=self.has_more,
            error=self.error,
        )
