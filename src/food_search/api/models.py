"""Pydantic models for the HTTP and WebSocket payloads."""

from typing import Literal

from pydantic import BaseModel, Field

from food_search.domain.records import NutritionRecord, Source, Unit
from food_search.domain.search import SearchState


class FoodPayload(BaseModel):
    """A nutrition record as sent to and received from clients."""

    name: str
    brand: str = ""
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    serving_size: str = ""
    unit: Literal["g", "ml"] = "g"
    source: Literal["usda", "open_food_facts"]
    source_id: int | None = None

    @classmethod
    def from_record(cls, record: NutritionRecord) -> "FoodPayload":
        return cls(
            name=record.name,
            brand=record.brand,
            calories=record.calories,
            protein=record.protein,
            carbs=record.carbs,
            fat=record.fat,
            serving_size=record.serving_size,
            unit=record.unit.value,
            source=record.source.value,
            source_id=record.source_id,
        )

    def to_record(self) -> NutritionRecord:
        return NutritionRecord(
            name=self.name,
            brand=self.brand,
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            serving_size=self.serving_size,
            unit=Unit(self.unit),
            source=Source(self.source),
            source_id=self.source_id,
        )


class SearchStatePayload(BaseModel):
    """Observable search state pushed to WebSocket clients."""

    type: Literal["state"] = "state"
    query: str
    foods: list[FoodPayload]
    loading: bool
    loading_more: bool
    has_more: bool
    can_load_more: bool
    error: str | None = None

    @classmethod
    def from_state(cls, state: SearchState) -> "SearchStatePayload":
        return cls(
            query=state.query,
            foods=[FoodPayload.from_record(record) for record in state.results],
            loading=state.loading,
            loading_more=state.loading_more,
            has_more=state.has_more,
            can_load_more=state.can_load_more,
            error=state.error,
        )


class DeltaPayload(BaseModel):
    """Records newly appended to the visible results."""

    type: Literal["delta"] = "delta"
    foods: list[FoodPayload]


class ClientMessage(BaseModel):
    """A message received from a WebSocket search client."""

    type: Literal["text", "search", "load_more", "select"]
    value: str | None = None
    food: FoodPayload | None = None


class ErrorPayload(BaseModel):
    """A client message that could not be handled."""

    type: Literal["error"] = "error"
    detail: str
