"""Provider clients mapping external nutrition databases to records."""

import logging
import math
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import httpx

from food_search.adapters.off_client import OpenFoodFactsClient
from food_search.adapters.usda_client import UsdaClient
from food_search.domain.records import NutritionRecord, ProviderPage, Source, Unit
from food_search.services.cache import Cache
from food_search.services.exceptions import ProviderError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

# Legacy nutrient numbers and current nutrient ids both appear in search results.
_USDA_NUTRIENT_KEYS = {
    "208": "calories",
    "1008": "calories",
    "203": "protein",
    "1003": "protein",
    "205": "carbs",
    "1005": "carbs",
    "204": "fat",
    "1004": "fat",
}
_KJ_PER_KCAL = 4.184
_ML_UNITS = {"ml", "mlt", "milliliter", "millilitre"}
_VOLUME_QUANTITY = re.compile(r"\d\s*(ml|cl|dl|l)\b", re.IGNORECASE)

_logger = logging.getLogger(__name__)


class ProviderClient(Protocol):
    """Contract every nutrition data source implements."""

    @property
    def source(self) -> Source:
        """The record source this provider contributes."""

    async def search(
        self, query: str, page_size: int, page_number: int = 1
    ) -> ProviderPage:
        """Return one page of mapped records for a query."""

    async def lookup_by_barcode(self, code: str) -> NutritionRecord | None:
        """Return the record for a barcode, if the provider knows it."""


@dataclass
class UsdaProvider(ProviderClient):
    """Generic and branded foods from USDA FoodData Central."""

    client: UsdaClient
    cache: Cache | None = None
    cache_ttl_seconds: int = 300

    @property
    def source(self) -> Source:
        return Source.USDA

    async def search(
        self, query: str, page_size: int, page_number: int = 1
    ) -> ProviderPage:
        """Search FDC foods, one page at a time."""
        cache_key = f"usda:search:{query.lower()}:{page_size}:{page_number}"
        cached = self.cache.get(cache_key) if self.cache is not None else None
        if isinstance(cached, ProviderPage):
            return cached

        payload = await _call_provider(
            self.source,
            lambda: self.client.search_foods(
                query, page_size=page_size, page_number=page_number
            ),
            action="search",
        )
        with _malformed_as_provider_error(self.source, "search"):
            foods = payload.get("foods") or []
            page = ProviderPage(
                records=[parse_usda_food(food) for food in foods],
                has_more_hint=_usda_has_more(payload),
            )
        if self.cache is not None:
            self.cache.set(cache_key, page, ttl_seconds=self.cache_ttl_seconds)
        _logger.debug(
            "USDA search: query=%s page=%s results=%s",
            query,
            page_number,
            page.raw_count,
        )
        return page

    async def lookup_by_barcode(self, code: str) -> NutritionRecord | None:
        """Find a branded food by UPC/GTIN."""
        payload = await _call_provider(
            self.source,
            lambda: self.client.search_foods(
                code, page_size=5, data_types=["Branded"]
            ),
            action=f"barcode:{code}",
        )
        with _malformed_as_provider_error(self.source, f"barcode:{code}"):
            foods = payload.get("foods") or []
            if not foods:
                return None
            padded = code.zfill(13)
            exact = next(
                (food for food in foods if food.get("gtinUpc") in {code, padded}),
                None,
            )
            return parse_usda_food(exact or foods[0])


@dataclass
class OpenFoodFactsProvider(ProviderClient):
    """Global branded products from Open Food Facts."""

    client: OpenFoodFactsClient
    cache: Cache | None = None
    cache_ttl_seconds: int = 300

    @property
    def source(self) -> Source:
        return Source.OPEN_FOOD_FACTS

    async def search(
        self, query: str, page_size: int, page_number: int = 1
    ) -> ProviderPage:
        """Search OFF products, one page at a time."""
        cache_key = f"off:search:{query.lower()}:{page_size}:{page_number}"
        cached = self.cache.get(cache_key) if self.cache is not None else None
        if isinstance(cached, ProviderPage):
            return cached

        payload = await _call_provider(
            self.source,
            lambda: self.client.search_products(
                query, page_size=page_size, page=page_number
            ),
            action="search",
        )
        with _malformed_as_provider_error(self.source, "search"):
            products = payload.get("products") or []
            page = ProviderPage(
                records=[
                    parse_off_product(product)
                    for product in products
                    if _off_product_name(product)
                ],
                has_more_hint=_off_has_more(payload, page_size, page_number),
            )
        if self.cache is not None:
            self.cache.set(cache_key, page, ttl_seconds=self.cache_ttl_seconds)
        _logger.debug(
            "OFF search: query=%s page=%s results=%s",
            query,
            page_number,
            page.raw_count,
        )
        return page

    async def lookup_by_barcode(self, code: str) -> NutritionRecord | None:
        """Fetch a product by barcode."""
        payload = await _call_provider(
            self.source,
            lambda: self.client.get_product(code),
            action=f"barcode:{code}",
        )
        with _malformed_as_provider_error(self.source, f"barcode:{code}"):
            product = payload.get("product")
            if payload.get("status") != 1 or not isinstance(product, dict):
                return None
            if not _off_product_name(product):
                return None
            return parse_off_product(product)


async def _call_provider(
    source: Source,
    func: "Callable[[], Awaitable[dict[str, object]]]",
    *,
    action: str,
) -> dict[str, object]:
    """Call a raw client once, translating transport failures to ProviderError."""
    try:
        return await func()
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        raise ProviderError(
            source, f"{action} failed with HTTP {status_code}", status_code
        ) from exc
    except httpx.HTTPError as exc:
        raise ProviderError(source, f"{action} failed: {exc!r}") from exc
    except ValueError as exc:
        raise ProviderError(source, f"{action} returned invalid JSON") from exc


@contextmanager
def _malformed_as_provider_error(
    source: Source, action: str
) -> "Iterator[None]":
    """Report a decodable but unexpectedly shaped body as a provider failure."""
    try:
        yield
    except (AttributeError, TypeError, ValueError) as exc:
        raise ProviderError(
            source, f"{action} returned a malformed response"
        ) from exc


def parse_usda_food(food: dict[str, object]) -> NutritionRecord:
    """Map an FDC search hit to a record, per 100 g or 100 ml."""
    values = {"calories": 0.0, "protein": 0.0, "carbs": 0.0, "fat": 0.0}
    for nutrient in food.get("foodNutrients") or []:
        key = _USDA_NUTRIENT_KEYS.get(
            str(nutrient.get("nutrientNumber"))
        ) or _USDA_NUTRIENT_KEYS.get(str(nutrient.get("nutrientId")))
        amount = nutrient.get("value", nutrient.get("amount"))
        if key and amount is not None:
            values[key] = float(amount)

    unit_name = str(food.get("servingSizeUnit") or "g").lower()
    unit = Unit.MILLILITERS if unit_name in _ML_UNITS else Unit.GRAMS
    serving_size = food.get("servingSize")
    # Branded hits report label values per serving.
    scale = 1.0
    if (
        food.get("dataType") == "Branded"
        and isinstance(serving_size, (int, float))
        and serving_size > 0
        and (unit is Unit.MILLILITERS or unit_name in {"g", "grm"})
    ):
        scale = 100 / serving_size

    brand = str(food.get("brandOwner") or food.get("brandName") or "").strip()
    fdc_id = food.get("fdcId")
    return NutritionRecord(
        name=naturalize_usda_name(str(food.get("description") or "unknown food")),
        brand=brand,
        calories=_round(values["calories"] * scale),
        protein=_round(values["protein"] * scale),
        carbs=_round(values["carbs"] * scale),
        fat=_round(values["fat"] * scale),
        serving_size=f"100{unit.value}",
        unit=unit,
        source=Source.USDA,
        source_id=fdc_id if isinstance(fdc_id, int) else None,
    )


def naturalize_usda_name(description: str) -> str:
    """Turn "Pear, raw" style descriptions into "raw Pear"."""
    parts = [part.strip() for part in description.split(",") if part.strip()]
    if len(parts) <= 1:
        return description.strip()
    base, modifiers = parts[0], parts[1:]
    return " ".join([*reversed(modifiers), base])


def parse_off_product(product: dict[str, object]) -> NutritionRecord:
    """Map an OFF product to a record using its per-100 values."""
    nutriments = product.get("nutriments") or {}
    kcal = _first_number(nutriments, "energy-kcal_100g", "energy-kcal")
    if kcal is None:
        kj = _first_number(nutriments, "energy-kj_100g", "energy-kj")
        kcal = kj / _KJ_PER_KCAL if kj is not None else 0.0

    quantity = str(product.get("quantity") or "")
    unit = Unit.MILLILITERS if _VOLUME_QUANTITY.search(quantity) else Unit.GRAMS
    code = str(product.get("code") or "")
    return NutritionRecord(
        name=_off_product_name(product) or "unknown",
        brand=str(product.get("brands") or "").strip(),
        calories=_round(kcal),
        protein=_round(_first_number(nutriments, "proteins_100g", "proteins") or 0),
        carbs=_round(
            _first_number(nutriments, "carbohydrates_100g", "carbohydrates") or 0
        ),
        fat=_round(_first_number(nutriments, "fat_100g", "fat") or 0),
        serving_size=f"100{unit.value}",
        unit=unit,
        source=Source.OPEN_FOOD_FACTS,
        source_id=int(code) if code.isdigit() else None,
    )


def _off_product_name(product: dict[str, object]) -> str | None:
    for key in ("product_name", "product_name_en", "generic_name"):
        value = product.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_number(values: dict[str, object], *keys: str) -> float | None:
    for key in keys:
        value = values.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


def _usda_has_more(payload: dict[str, object]) -> bool | None:
    current = payload.get("currentPage")
    total = payload.get("totalPages")
    if isinstance(current, int) and isinstance(total, int):
        return current < total
    return None


def _off_has_more(
    payload: dict[str, object], page_size: int, page_number: int
) -> bool | None:
    count = payload.get("count")
    if isinstance(count, str) and count.isdigit():
        count = int(count)
    if isinstance(count, int):
        return page_number * page_size < count
    return None


def _round(value: float) -> float:
    """Round half up to a whole number."""
    return float(math.floor(value + 0.5))
