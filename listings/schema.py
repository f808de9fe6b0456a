"""Pydantic model for property listings with index-friendly text generation."""

import math
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PropertyType = Literal["apartment", "house", "duplex", "penthouse"]
MarketTrend = Literal["rising", "stable", "declining"]

PROPERTY_TYPES: tuple[str, ...] = ("apartment", "house", "duplex", "penthouse")


def price_bucket(price: int | float) -> str:
    """Coarse price label shared by listing and query text, e.g. ``price_8m``."""
    return f"price_{math.floor(price / 1_000_000)}m"


class VerificationInfo(BaseModel):
    """Reference to the verification provider's view of a listing."""

    model_config = ConfigDict(frozen=True)

    is_verified: bool = False
    trust_score: Optional[int] = Field(default=None, ge=0, le=100)
    certificate_ref: Optional[str] = None


class MarketData(BaseModel):
    model_config = ConfigDict(frozen=True)

    price_per_sqft: float = Field(ge=0)
    trend: MarketTrend = "stable"
    days_on_market: int = Field(default=0, ge=0)
    investment_potential: Optional[int] = Field(default=None, ge=0, le=10)


class PropertyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    address: str
    location: str  # neighborhood tag, e.g. "lekki", "victoria_island"
    price: int = Field(gt=0)  # whole currency units
    currency: str = "NGN"
    bedrooms: int = Field(ge=0)
    bathrooms: float = Field(ge=0)
    size_sqft: float = Field(gt=0)
    property_type: PropertyType
    amenities: list[str] = []
    lifestyle: list[str] = []
    verification: VerificationInfo = VerificationInfo()
    market: MarketData

    def to_searchable_text(self) -> str:
        """Generate text for embedding."""
        parts = [
            self.address,
            self.location,
            self.property_type,
            *self.amenities,
            *self.lifestyle,
            price_bucket(self.price),
        ]
        return " ".join(part for part in parts if part)
