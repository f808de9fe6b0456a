"""External data providers consulted when presenting matches.

The matching core only needs two answers about a property id: a trust
indicator from the verification provider and a short neighborhood insight.
Both are ABCs so real services can replace the catalog-backed defaults.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from listings.catalog import PropertyCatalog


@dataclass(frozen=True)
class TrustIndicator:
    is_verified: bool
    trust_score: Optional[int] = None  # 0-100


class VerificationProvider(ABC):
    @abstractmethod
    def trust_indicator(self, property_id: str) -> Optional[TrustIndicator]:
        """Return the trust indicator for a property, or None if unknown."""


class InsightProvider(ABC):
    @abstractmethod
    def insight(self, property_id: str) -> str:
        """Return a free-text neighborhood insight; empty when none is known."""


class CatalogVerificationProvider(VerificationProvider):
    """Reads the verification metadata attached to catalog records."""

    def __init__(self, catalog: PropertyCatalog) -> None:
        self._catalog = catalog

    def trust_indicator(self, property_id: str) -> Optional[TrustIndicator]:
        record = self._catalog.get(property_id)
        if record is None:
            return None
        info = record.verification
        return TrustIndicator(is_verified=info.is_verified, trust_score=info.trust_score)


# Three-bedroom market ranges (NGN) and character of each area.
NEIGHBORHOOD_NOTES: dict[str, str] = {
    "victoria_island": "Premium business district; ₦5M–₦15M for 3BR, high security, heavy traffic.",
    "ikoyi": "Ultra-luxury residential; ₦8M–₦25M for 3BR, excellent infrastructure, expatriate community.",
    "lekki": "Modern developments; ₦4M–₦12M for 3BR, good amenities, growing area.",
    "ajah": "Emerging area; ₦2M–₦6M for 3BR, value for money, longer commute to VI/Ikoyi.",
    "surulere": "Established middle-class area; ₦3M–₦8M for 3BR, central, mixed infrastructure.",
    "maitama": "Diplomatic zone; ₦6M–₦20M for 3BR, highest security, premium location.",
    "asokoro": "Government residential; ₦5M–₦15M for 3BR, excellent security, established area.",
    "wuse": "Close to the business district; ₦4M–₦10M for 3BR, commercial convenience.",
    "gwarinpa": "Largest planned estate; ₦3M–₦8M for 3BR, family-friendly.",
    "kubwa": "Satellite town; ₦2M–₦5M for 3BR, affordable, longer commute.",
}

_TREND_NOTES = {
    "rising": "prices are rising",
    "stable": "prices are stable",
    "declining": "prices are softening",
}


class NeighborhoodInsightProvider(InsightProvider):
    """Static Lagos/Abuja market notes plus the listing's own market data."""

    def __init__(
        self,
        catalog: PropertyCatalog,
        notes: dict[str, str] | None = None,
    ) -> None:
        self._catalog = catalog
        self._notes = notes if notes is not None else NEIGHBORHOOD_NOTES

    def _note_for(self, location: str) -> str:
        if location in self._notes:
            return self._notes[location]
        for key, note in self._notes.items():
            if key in location:
                return note
        return ""

    def insight(self, property_id: str) -> str:
        record = self._catalog.get(property_id)
        if record is None:
            return ""
        market = record.market
        listing_note = (
            f"Listed {market.days_on_market} days; {_TREND_NOTES[market.trend]} "
            f"at {record.currency} {market.price_per_sqft:,.0f}/sqft."
        )
        area_note = self._note_for(record.location)
        return f"{area_note} {listing_note}".strip()
