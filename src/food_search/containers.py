"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from food_search.adapters.off_client import HttpxOpenFoodFactsClient
from food_search.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from food_search.adapters.usda_client import HttpxUsdaClient
from food_search.config import Settings
from food_search.services.barcode import BarcodeLookupService
from food_search.services.cache import InMemoryCache
from food_search.services.controller import FoodSearchController
from food_search.services.filters import ResultFilterPipeline
from food_search.services.history import (
    HistoryRepository,
    HistoryService,
    InMemoryHistoryRepository,
)
from food_search.services.providers import (
    OpenFoodFactsProvider,
    ProviderClient,
    UsdaProvider,
)
from food_search.services.search import SearchOrchestrator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    providers: list[ProviderClient]
    filter_pipeline: ResultFilterPipeline
    history_service: HistoryService
    barcode_service: BarcodeLookupService
    close_resources: Callable[[], Awaitable[None]]

    def create_controller(self) -> FoodSearchController:
        """Create a controller for one search surface."""
        orchestrator = SearchOrchestrator(
            providers=self.providers,
            filter_pipeline=self.filter_pipeline,
            page_size=self.settings.search_page_size,
        )
        return FoodSearchController(
            orchestrator=orchestrator,
            history_service=self.history_service,
            barcode_service=self.barcode_service,
            debounce_seconds=self.settings.search_debounce_seconds,
            min_query_length=self.settings.search_min_query_length,
            page_size=self.settings.search_page_size,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    cache = InMemoryCache()
    usda_client = HttpxUsdaClient.create(
        api_key=resolved_settings.usda_api_key,
        base_url=resolved_settings.usda_base_url,
        timeout=resolved_settings.http_timeout_seconds,
    )
    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout=resolved_settings.http_timeout_seconds,
    )
    usda_provider = UsdaProvider(
        client=usda_client,
        cache=cache,
        cache_ttl_seconds=resolved_settings.search_cache_ttl_seconds,
    )
    off_provider = OpenFoodFactsProvider(
        client=off_client,
        cache=cache,
        cache_ttl_seconds=resolved_settings.search_cache_ttl_seconds,
    )
    filter_pipeline = ResultFilterPipeline()

    history_repository: HistoryRepository
    if resolved_settings.supabase_enabled:
        supabase_client = create_client(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
        history_repository = SupabaseHistoryRepository(supabase_client)
    else:
        history_repository = InMemoryHistoryRepository()

    async def close_resources() -> None:
        await usda_client.close()
        await off_client.close()

    return AppContainer(
        settings=resolved_settings,
        providers=[usda_provider, off_provider],
        filter_pipeline=filter_pipeline,
        history_service=HistoryService(
            history_repository, max_entries=resolved_settings.history_max_entries
        ),
        # Open Food Facts has the wider barcode coverage.
        barcode_service=BarcodeLookupService(
            providers=[off_provider, usda_provider],
            filter_pipeline=filter_pipeline,
        ),
        close_resources=close_resources,
    )
