"""Tests for container wiring."""

import asyncio

from food_search.config import Settings
from food_search.containers import build_container
from food_search.domain.records import Source
from food_search.services.history import InMemoryHistoryRepository


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert [provider.source for provider in container.providers] == [
        Source.USDA,
        Source.OPEN_FOOD_FACTS,
    ]
    assert [p.source for p in container.barcode_service.providers] == [
        Source.OPEN_FOOD_FACTS,
        Source.USDA,
    ]
    assert isinstance(container.history_service.repository, InMemoryHistoryRepository)
    asyncio.run(container.close_resources())


def test_create_controller_uses_settings(settings: Settings) -> None:
    container = build_container(settings)

    controller = container.create_controller()

    assert controller.debounce_seconds == settings.search_debounce_seconds
    assert controller.page_size == 10
    assert controller.orchestrator.providers == container.providers
    asyncio.run(container.close_resources())
