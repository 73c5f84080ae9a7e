"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from food_search.config import Settings
from food_search.containers import AppContainer
from food_search.domain.records import NutritionRecord, ProviderPage, Source, Unit
from food_search.services.barcode import BarcodeLookupService
from food_search.services.exceptions import ProviderError
from food_search.services.filters import ResultFilterPipeline
from food_search.services.history import HistoryService, InMemoryHistoryRepository
from food_search.services.providers import ProviderClient


def make_record(  # noqa: PLR0913
    name: str,
    brand: str = "",
    calories: float = 52,
    protein: float = 0.3,
    carbs: float = 14,
    fat: float = 0.2,
    source: Source = Source.USDA,
    source_id: int | None = None,
    unit: Unit = Unit.GRAMS,
) -> NutritionRecord:
    return NutritionRecord(
        name=name,
        brand=brand,
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        serving_size=f"100{unit.value}",
        unit=unit,
        source=source,
        source_id=source_id,
    )


async def drain_loop(iterations: int = 10) -> None:
    """Let ready tasks run without advancing any timers."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@dataclass
class FakeProvider(ProviderClient):
    """Provider returning canned pages, optionally held behind a gate."""

    kind: Source
    pages: dict[tuple[str, int], list[NutritionRecord]] = field(default_factory=dict)
    hints: dict[tuple[str, int], bool | None] = field(default_factory=dict)
    barcodes: dict[str, NutritionRecord] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    error: ProviderError | None = None
    ignore_cancel: bool = False
    calls: list[tuple[str, int, int]] = field(default_factory=list)
    barcode_calls: list[str] = field(default_factory=list)

    @property
    def source(self) -> Source:
        return self.kind

    def add_page(
        self,
        query: str,
        page_number: int,
        records: list[NutritionRecord],
        has_more: bool | None = None,
    ) -> None:
        self.pages[(query, page_number)] = records
        self.hints[(query, page_number)] = has_more

    async def search(
        self, query: str, page_size: int, page_number: int = 1
    ) -> ProviderPage:
        self.calls.append((query, page_size, page_number))
        gate = self.gates.get(query)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                if not self.ignore_cancel:
                    raise
        if self.error is not None:
            raise self.error
        return ProviderPage(
            records=list(self.pages.get((query, page_number), [])),
            has_more_hint=self.hints.get((query, page_number)),
        )

    async def lookup_by_barcode(self, code: str) -> NutritionRecord | None:
        self.barcode_calls.append(code)
        if self.error is not None:
            raise self.error
        return self.barcodes.get(code)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        usda_api_key="test-key",
        search_debounce_seconds=0.01,
        search_page_size=10,
        supabase_url=None,
        supabase_service_key=None,
    )


@pytest.fixture
def usda_provider() -> FakeProvider:
    provider = FakeProvider(Source.USDA)
    provider.add_page(
        "apple",
        1,
        [
            make_record("raw Apple", source_id=1001),
            make_record(
                "Apple, dried",
                calories=243,
                protein=1,
                carbs=66,
                fat=0.3,
                source_id=1002,
            ),
        ],
    )
    provider.add_page(
        "apple",
        2,
        [
            make_record(
                "Apple pie", calories=237, protein=2, carbs=34, fat=11, source_id=1003
            )
        ],
    )
    provider.barcodes["3017620422003"] = make_record(
        "Hazelnut spread",
        "Ferrero",
        calories=539,
        protein=6.3,
        carbs=57.5,
        fat=30.9,
        source_id=45001,
    )
    return provider


@pytest.fixture
def off_provider() -> FakeProvider:
    provider = FakeProvider(Source.OPEN_FOOD_FACTS)
    provider.add_page(
        "apple",
        1,
        [
            make_record(
                "Apple juice",
                "Tropicana",
                calories=46,
                protein=0.1,
                carbs=11,
                fat=0.1,
                source=Source.OPEN_FOOD_FACTS,
                source_id=5449000000996,
                unit=Unit.MILLILITERS,
            )
        ],
    )
    return provider


@pytest.fixture
def container(
    settings: Settings, usda_provider: FakeProvider, off_provider: FakeProvider
) -> AppContainer:
    filter_pipeline = ResultFilterPipeline()

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        providers=[usda_provider, off_provider],
        filter_pipeline=filter_pipeline,
        history_service=HistoryService(InMemoryHistoryRepository()),
        barcode_service=BarcodeLookupService(
            providers=[off_provider, usda_provider],
            filter_pipeline=filter_pipeline,
        ),
        close_resources=close_resources,
    )
