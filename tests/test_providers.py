"""Tests for the verification and neighborhood insight providers."""

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from listings.catalog import PropertyCatalog
from matching.providers import (
    CatalogVerificationProvider,
    InsightProvider,
    NeighborhoodInsightProvider,
    TrustIndicator,
    VerificationProvider,
)


@pytest.fixture(scope="module")
def catalog():
    return PropertyCatalog.from_json()


class TestCatalogVerificationProvider:
    def test_verified_listing(self, catalog):
        indicator = CatalogVerificationProvider(catalog).trust_indicator("ikoyi_001")
        assert indicator == TrustIndicator(is_verified=True, trust_score=98)

    def test_unverified_listing(self, catalog):
        indicator = CatalogVerificationProvider(catalog).trust_indicator("ajah_001")
        assert indicator.is_verified is False
        assert indicator.trust_score is None

    def test_unknown_listing(self, catalog):
        assert CatalogVerificationProvider(catalog).trust_indicator("nope") is None


class TestNeighborhoodInsightProvider:
    def test_area_and_market_notes(self, catalog):
        insight = NeighborhoodInsightProvider(catalog).insight("maitama_001")
        assert insight.startswith("Diplomatic zone")
        assert "prices are stable" in insight
        assert "NGN 6,000/sqft" in insight

    def test_tag_containment(self, catalog):
        insight = NeighborhoodInsightProvider(catalog).insight("wuse_001")
        assert "business district" in insight

    def test_unknown_area_still_has_market_note(self, catalog):
        insight = NeighborhoodInsightProvider(catalog, notes={}).insight("kubwa_001")
        assert insight.startswith("Listed 73 days")
        assert "softening" in insight

    def test_unknown_listing(self, catalog):
        assert NeighborhoodInsightProvider(catalog).insight("nope") == ""


class TestProviderABCs:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            VerificationProvider()
        with pytest.raises(TypeError):
            InsightProvider()
