"""Open Food Facts API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts API interactions."""

    async def search_products(
        self, query: str, page_size: int = 10, page: int = 1
    ) -> dict[str, object]:
        """Search products by free text and return raw API data."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""

    async def close(self) -> None:
        """Release network resources."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client.

    Open Food Facts asks every caller to identify itself with a
    descriptive User-Agent, so it is sent on each request.
    """

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    timeout: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout: float = 15.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def search_products(
        self, query: str, page_size: int = 10, page: int = 1
    ) -> dict[str, object]:
        """Search products with the legacy search endpoint."""
        url = f"{self.base_url}/cgi/search.pl"
        response = await self.http_client.get(
            url,
            params={
                "search_terms": query,
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page_size": page_size,
                "page": page,
            },
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a single product by barcode."""
        url = f"{self.base_url}/api/v0/product/{barcode}.json"
        response = await self.http_client.get(
            url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
