"""USDA FoodData Central API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

SEARCH_DATA_TYPES = ["Branded", "SR Legacy", "Foundation", "Survey (FNDDS)"]


class UsdaClient(Protocol):
    """Interface for FoodData Central API interactions."""

    async def search_foods(
        self,
        query: str,
        page_size: int = 10,
        page_number: int = 1,
        data_types: list[str] | None = None,
    ) -> dict[str, object]:
        """Search foods by query and return raw API data."""

    async def close(self) -> None:
        """Release network resources."""


@dataclass
class HttpxUsdaClient(UsdaClient):
    """HTTPX-backed FoodData Central client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout: float = 15.0
    ) -> "HttpxUsdaClient":
        """Create a client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def search_foods(
        self,
        query: str,
        page_size: int = 10,
        page_number: int = 1,
        data_types: list[str] | None = None,
    ) -> dict[str, object]:
        """Search foods by query, one page at a time."""
        url = f"{self.base_url}/foods/search"
        response = await self.http_client.post(
            url,
            params={"api_key": self.api_key},
            json={
                "query": query,
                "dataType": data_types or SEARCH_DATA_TYPES,
                "pageSize": page_size,
                "pageNumber": page_number,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
