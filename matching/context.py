"""User preference context and rule-based extraction from free text.

``extract_context`` turns one utterance into a partial
UserPreferenceContext. Fields it cannot find are left as None ("unknown"),
never filled with defaults, so merging across turns can tell "not said"
apart from "said again".
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from listings.schema import PROPERTY_TYPES, PropertyType
from matching.errors import InvalidContext

log = logging.getLogger("matching.context")


class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    WITHIN_MONTH = "within_month"
    EXPLORING = "exploring"


class Budget(BaseModel):
    min: int = 0
    max: int
    currency: str = "NGN"

    @model_validator(mode="after")
    def _check_range(self) -> "Budget":
        if self.max <= 0:
            raise InvalidContext(f"budget max must be positive, got {self.max}")
        if self.min < 0 or self.min > self.max:
            raise InvalidContext(f"budget min {self.min} outside 0..{self.max}")
        return self


class UserPreferenceContext(BaseModel):
    """Accumulated search preferences. None means unknown."""

    location: Optional[str] = None
    budget: Optional[Budget] = None
    bedrooms: Optional[int] = None
    property_type: Optional[PropertyType] = None
    lifestyle: Optional[list[str]] = None
    urgency: Optional[Urgency] = None

    @field_validator("bedrooms")
    @classmethod
    def _check_bedrooms(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise InvalidContext(f"bedrooms must be non-negative, got {value}")
        return value

    def known_fields(self) -> dict[str, object]:
        """Fields that carry a value, in declaration order."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) not in (None, [])
        }

    def merge(self, update: "UserPreferenceContext") -> "UserPreferenceContext":
        """Return a new context: known fields of ``update`` overwrite ours."""
        return self.model_copy(update=update.known_fields(), deep=True)

    def is_empty(self) -> bool:
        return not self.known_fields()


# ── Vocabularies ──────────────────────────────────────────────────

# Phrase -> location tag. Longer phrases first so "victoria island" wins
# over "vi" when both start at the same offset.
LOCATION_GAZETTEER: dict[str, str] = {
    "victoria island": "victoria_island",
    "vi": "victoria_island",
    "ikoyi": "ikoyi",
    "lekki": "lekki",
    "ajah": "ajah",
    "surulere": "surulere",
    "maitama": "maitama",
    "asokoro": "asokoro",
    "wuse 2": "wuse_2",
    "wuse": "wuse",
    "gwarinpa": "gwarinpa",
    "kubwa": "kubwa",
}

LIFESTYLE_KEYWORDS: dict[str, str] = {
    "family": "family-friendly",
    "kids": "family-friendly",
    "security": "high-security",
    "secure": "high-security",
    "quiet": "quiet-area",
    "peaceful": "quiet-area",
    "business": "business-district",
    "luxury": "luxury",
    "modern": "modern",
}

URGENCY_PHRASES: dict[str, Urgency] = {
    "urgent": Urgency.IMMEDIATE,
    "urgently": Urgency.IMMEDIATE,
    "asap": Urgency.IMMEDIATE,
    "immediately": Urgency.IMMEDIATE,
    "right away": Urgency.IMMEDIATE,
    "next month": Urgency.WITHIN_MONTH,
    "this month": Urgency.WITHIN_MONTH,
    "within a month": Urgency.WITHIN_MONTH,
    "few weeks": Urgency.WITHIN_MONTH,
    "just looking": Urgency.EXPLORING,
    "exploring": Urgency.EXPLORING,
    "browsing": Urgency.EXPLORING,
}

CONFUSION_PHRASES = (
    "i don't understand",
    "i dont understand",
    "what do you mean",
    "confused",
    "not sure",
    "can you explain",
    "help me",
    "i'm lost",
)

_BEDROOM_RE = re.compile(r"\b(\d+)[\s-]*(?:bed(?:room)?s?)\b", re.IGNORECASE)
_AMOUNT_RE = re.compile(
    r"(?P<currency>₦|\$|\bngn\b|\busd\b|\bnaira\b)?\s*"
    r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
    r"\s*(?P<magnitude>millions?|mil|m|thousands?|k)?\b",
    re.IGNORECASE,
)
_USD_RE = re.compile(r"\$|\busd\b|\bdollars?\b", re.IGNORECASE)
_RANGE_JOINERS = ("and", "to", "-", "–")

_MAGNITUDES = {"million": 1_000_000, "millions": 1_000_000, "mil": 1_000_000, "m": 1_000_000,
               "thousand": 1_000, "thousands": 1_000, "k": 1_000}
_MAGNITUDE_WORD_RE = re.compile(r"\b(?:million|thousand)s?\b", re.IGNORECASE)

# Bare four-digit numbers in this span read as years ("move in 2025").
_YEAR_MIN, _YEAR_MAX = 1900, 2100


def _word_pattern(phrase: str, plural: bool = False) -> re.Pattern:
    suffix = r"(?:s|es)?" if plural else ""
    return re.compile(rf"\b{re.escape(phrase)}{suffix}\b", re.IGNORECASE)


def _earliest(text: str, patterns: dict[str, re.Pattern]) -> Optional[str]:
    """Key of the pattern matching earliest in ``text`` (dict order breaks ties)."""
    best_key, best_pos = None, None
    for key, pattern in patterns.items():
        match = pattern.search(text)
        if match and (best_pos is None or match.start() < best_pos):
            best_key, best_pos = key, match.start()
    return best_key


class ContextExtractor:
    """Stateless rule-based extractor. One instance may be shared freely."""

    def __init__(
        self,
        gazetteer: dict[str, str] | None = None,
        lifestyle_keywords: dict[str, str] | None = None,
    ) -> None:
        self._gazetteer = dict(gazetteer or LOCATION_GAZETTEER)
        self._location_patterns = {p: _word_pattern(p) for p in self._gazetteer}
        self._type_patterns = {t: _word_pattern(t, plural=True) for t in PROPERTY_TYPES}
        self._lifestyle = dict(lifestyle_keywords or LIFESTYLE_KEYWORDS)
        self._lifestyle_patterns = {k: _word_pattern(k) for k in self._lifestyle}
        self._urgency_patterns = {p: _word_pattern(p) for p in URGENCY_PHRASES}

    def extract(self, text: str) -> UserPreferenceContext:
        found: dict[str, object] = {}

        location = self.extract_location(text)
        if location is not None:
            found["location"] = location

        bedrooms = self.extract_bedrooms(text)
        if bedrooms is not None:
            found["bedrooms"] = bedrooms

        budget = self.extract_budget(text)
        if budget is not None:
            found["budget"] = budget

        property_type = _earliest(text, self._type_patterns)
        if property_type is not None:
            found["property_type"] = property_type

        lifestyle = self.extract_lifestyle(text)
        if lifestyle:
            found["lifestyle"] = lifestyle

        urgency = _earliest(text, self._urgency_patterns)
        if urgency is not None:
            found["urgency"] = URGENCY_PHRASES[urgency]

        log.debug("Extracted %s from %r", sorted(found), text[:80])
        return UserPreferenceContext(**found)

    # ── Field rules ───────────────────────────────────────────

    def extract_location(self, text: str) -> Optional[str]:
        phrase = _earliest(text, self._location_patterns)
        return self._gazetteer[phrase] if phrase is not None else None

    @staticmethod
    def extract_bedrooms(text: str) -> Optional[int]:
        match = _BEDROOM_RE.search(text)
        return int(match.group(1)) if match else None

    def extract_lifestyle(self, text: str) -> list[str]:
        tags: list[str] = []
        for keyword, pattern in self._lifestyle_patterns.items():
            tag = self._lifestyle[keyword]
            if tag not in tags and pattern.search(text):
                tags.append(tag)
        return tags

    def extract_budget(self, text: str) -> Optional[Budget]:
        """Parse one amount as a ceiling, or two or more as a min/max range."""
        # Bedroom counts and place names like "Wuse 2" are not money.
        scrubbed = _BEDROOM_RE.sub(" ", text)
        for pattern in self._location_patterns.values():
            scrubbed = pattern.sub(" ", scrubbed)

        matches = list(_AMOUNT_RE.finditer(scrubbed))
        # "10, in millions": a free-standing magnitude word scales bare amounts.
        loose_magnitude = None
        if not any(match.group("magnitude") for match in matches):
            word = _MAGNITUDE_WORD_RE.search(scrubbed)
            loose_magnitude = word.group(0) if word else None

        amounts: list[int] = []
        for idx, match in enumerate(matches):
            magnitude = match.group("magnitude")
            # "5 to 8 million": the bare lower bound takes the upper's magnitude.
            if not magnitude and idx + 1 < len(matches):
                following = matches[idx + 1]
                joiner = scrubbed[match.end():following.start()].strip().lower()
                if following.group("magnitude") and joiner in _RANGE_JOINERS:
                    magnitude = following.group("magnitude")

            raw = match.group("amount")
            value = float(raw.replace(",", ""))
            if not magnitude and loose_magnitude and value < 1_000:
                magnitude = loose_magnitude

            if magnitude:
                value *= _MAGNITUDES[magnitude.lower()]
            elif not match.group("currency"):
                if value < 1_000 or (raw.isdigit() and _YEAR_MIN <= value <= _YEAR_MAX):
                    continue
            amounts.append(int(round(value)))

        if not amounts:
            return None

        currency = "USD" if _USD_RE.search(text) else "NGN"
        low = min(amounts) if len(amounts) > 1 else 0
        try:
            return Budget(min=low, max=max(amounts), currency=currency)
        except ValidationError:
            log.debug("Ignoring malformed budget in %r", text[:80])
            return None


def detect_confusion(text: str) -> bool:
    """True when the user signals they are lost or need clarification."""
    lowered = text.lower()
    return any(phrase in lowered for phrase in CONFUSION_PHRASES)


_default_extractor = ContextExtractor()


def extract_context(text: str) -> UserPreferenceContext:
    """Extract preferences with the default vocabularies."""
    return _default_extractor.extract(text)
