"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    usda_api_key: str = "DEMO_KEY"
    usda_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "food-search/0.1 (nutrition tracker)"
    http_timeout_seconds: float = 15.0
    search_debounce_seconds: float = 0.5
    search_min_query_length: int = 3
    search_page_size: int = 15
    search_cache_ttl_seconds: int = 300
    history_max_entries: int = 100
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def supabase_enabled(self) -> bool:
        """Return true when Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_key)
