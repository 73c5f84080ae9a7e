"""Barcode lookup across providers in priority order."""

import logging
import re
from dataclasses import dataclass, field

from food_search.domain.records import NutritionRecord
from food_search.services.exceptions import ProviderError
from food_search.services.filters import ResultFilterPipeline
from food_search.services.providers import ProviderClient

_NON_DIGITS = re.compile(r"\D")

_logger = logging.getLogger(__name__)


@dataclass
class BarcodeLookupService:
    """Looks a barcode up in each provider until one knows it.

    The first record found is the answer; it is then filtered like any
    search result, so an unacceptable hit yields None rather than a
    lookup in the next provider.
    """

    providers: list[ProviderClient]
    filter_pipeline: ResultFilterPipeline = field(default_factory=ResultFilterPipeline)

    async def lookup(self, code: str) -> NutritionRecord | None:
        normalized = _NON_DIGITS.sub("", code)
        if not normalized:
            return None
        for provider in self.providers:
            try:
                record = await provider.lookup_by_barcode(normalized)
            except ProviderError as exc:
                _logger.warning(
                    "Barcode lookup failed: provider=%s code=%s error=%s",
                    provider.source.value,
                    normalized,
                    exc,
                )
                continue
            if record is not None:
                return self.filter_pipeline.filter_single(record)
        return None
