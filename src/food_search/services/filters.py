"""Content-quality filter for provider results.

Every record passes through an ordered chain of pure rules. The first
rule that objects decides the rejection reason; a record no rule
objects to is accepted with its name and brand sanitized and
lowercased. Nothing here performs I/O, so identical input always yields
an identical decision.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

import emoji

from food_search.domain.records import NutritionRecord
from food_search.domain.search import FilterDecision, RejectReason

PLACEHOLDER_NAMES = frozenset(
    {"unknown", "unknown food", "n/a", "na", "none", "null", "undefined", "-"}
)

PROFANITY_BLOCKLIST = frozenset(
    {
        "shit", "shitty", "bullshit", "ass", "asshole", "damn", "damned",
        "fuck", "fucking", "fucker", "fucked", "crap", "crappy",
        "bitch", "bastard", "dick", "cock", "pussy", "slut",
        "retard", "retarded", "nigger", "nigga", "fag", "faggot",
    }
)

MIN_NAME_LENGTH = 2
MIN_LATIN_RATIO = 0.5
MIN_ALPHA_RATIO = 0.2
MAX_CALORIES = 1000
MAX_MACRO_GRAMS = 100
MAX_MACROS_WITHOUT_CALORIES = 5
CALORIE_ESTIMATE_BAND = (0.3, 2.5)

_WHITESPACE = re.compile(r"\s+")
_PROFANITY = re.compile(
    r"\b(" + "|".join(re.escape(term) for term in sorted(PROFANITY_BLOCKLIST)) + r")\b",
    re.IGNORECASE,
)
_JUNK = re.compile(
    r"\bwww\.|https?://|\.(com|org|net|io)\b|\b(ey\s*bro|lol|omg|yolo|wtf|bro\s*bruh)\b",
    re.IGNORECASE,
)
# Basic Latin plus Latin-1 Supplement, Latin Extended-A/B and Latin Extended Additional.
_LATIN_LETTER = re.compile(r"[A-Za-z\u00c0-\u00d6\u00d8-\u00f6\u00f8-\u024f\u1e00-\u1eff]")

Rule = Callable[[NutritionRecord], RejectReason | None]

_logger = logging.getLogger(__name__)


def sanitize_text(text: str | None) -> str:
    """Strip emoji, collapse internal whitespace and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", emoji.replace_emoji(text, replace="")).strip()


def sanitize_record(record: NutritionRecord) -> NutritionRecord:
    """Return a working copy with sanitized name and brand."""
    return replace(
        record, name=sanitize_text(record.name), brand=sanitize_text(record.brand)
    )


def check_min_length(record: NutritionRecord) -> RejectReason | None:
    if len(record.name) < MIN_NAME_LENGTH:
        return RejectReason.TOO_SHORT
    return None


def check_placeholder(record: NutritionRecord) -> RejectReason | None:
    if record.name.lower() in PLACEHOLDER_NAMES:
        return RejectReason.PLACEHOLDER
    return None


def check_profanity(record: NutritionRecord) -> RejectReason | None:
    """Whole-word match only: "class" and "scrapple" are fine."""
    if _PROFANITY.search(record.name) or _PROFANITY.search(record.brand):
        return RejectReason.PROFANITY
    return None


def check_junk(record: NutritionRecord) -> RejectReason | None:
    if _JUNK.search(record.name) or _JUNK.search(record.brand):
        return RejectReason.JUNK
    return None


def check_script_ratio(record: NutritionRecord) -> RejectReason | None:
    """Reject names written mostly outside the Latin script.

    This is a coarse character-count heuristic, not language detection:
    digits and punctuation count against the ratio just like letters
    from other scripts do.
    """
    visible = [char for char in record.name if not char.isspace()]
    if not visible:
        return RejectReason.NON_LATIN
    latin = sum(1 for char in visible if _LATIN_LETTER.match(char))
    if latin / len(visible) < MIN_LATIN_RATIO:
        return RejectReason.NON_LATIN
    return None


def check_alpha_density(record: NutritionRecord) -> RejectReason | None:
    letters = sum(1 for char in record.name if char.isalpha())
    if letters / max(1, len(record.name)) < MIN_ALPHA_RATIO:
        return RejectReason.LOW_ALPHA
    return None


def check_nutrition(record: NutritionRecord) -> RejectReason | None:
    """Reject internally inconsistent or implausible per-serving values."""
    macros = (record.protein, record.carbs, record.fat)
    if record.calories == 0 and not any(macros):
        # Water, black coffee, diet soda.
        return None
    if record.calories < 0 or any(value < 0 for value in macros):
        return RejectReason.IMPLAUSIBLE_NUTRITION
    if record.calories == 0 and sum(macros) > MAX_MACROS_WITHOUT_CALORIES:
        return RejectReason.IMPLAUSIBLE_NUTRITION
    if record.calories > MAX_CALORIES or any(v > MAX_MACRO_GRAMS for v in macros):
        return RejectReason.IMPLAUSIBLE_NUTRITION
    estimate = record.protein * 4 + record.carbs * 4 + record.fat * 9
    if estimate > 0 and record.calories > 0:
        low, high = CALORIE_ESTIMATE_BAND
        if not low * estimate <= record.calories <= high * estimate:
            return RejectReason.IMPLAUSIBLE_NUTRITION
    return None


DEFAULT_RULES: tuple[Rule, ...] = (
    check_min_length,
    check_placeholder,
    check_profanity,
    check_junk,
    check_script_ratio,
    check_alpha_density,
    check_nutrition,
)


@dataclass(frozen=True)
class ResultFilterPipeline:
    """Ordered rule chain; the first objecting rule rejects the record."""

    rules: tuple[Rule, ...] = DEFAULT_RULES

    def filter_record(self, record: NutritionRecord) -> FilterDecision:
        """Decide whether a single record may be shown."""
        candidate = sanitize_record(record)
        for rule in self.rules:
            reason = rule(candidate)
            if reason is not None:
                return FilterDecision.reject(reason)
        return FilterDecision.accept(
            replace(
                candidate, name=candidate.name.lower(), brand=candidate.brand.lower()
            )
        )

    def filter_page(self, records: Iterable[NutritionRecord]) -> list[NutritionRecord]:
        """Return accepted records in their original order."""
        accepted: list[NutritionRecord] = []
        for record in records:
            decision = self.filter_record(record)
            if decision.record is not None:
                accepted.append(decision.record)
            else:
                _logger.debug(
                    "Dropped %s record %r: %s",
                    record.source.value,
                    record.name,
                    decision.reason.value if decision.reason else "unknown",
                )
        return accepted

    def filter_single(self, record: NutritionRecord | None) -> NutritionRecord | None:
        """Filter one optional record, as for a barcode lookup."""
        if record is None:
            return None
        return self.filter_record(record).record
