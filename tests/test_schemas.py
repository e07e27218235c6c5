"""Tests for the listing model's season/terms union."""

import pytest
from pydantic import ValidationError

from listingwatch.schemas import Listing, SeasonPeriod, TermsPeriod

BASE = {
    "id": "abc", "company_name": "Acme", "title": "Intern",
    "active": True, "is_visible": True,
    "date_posted": 1700000000, "date_updated": 1700000100,
}


class TestPeriod:
    def test_season(self):
        listing = Listing.model_validate({**BASE, "season": "Summer"})
        assert isinstance(listing.period, SeasonPeriod)
        assert listing.period.label() == "Summer"

    def test_terms(self):
        listing = Listing.model_validate({**BASE, "terms": ["Summer 2026", "Fall 2026"]})
        assert isinstance(listing.period, TermsPeriod)
        assert listing.period.label() == "Summer 2026, Fall 2026"

    def test_both_rejected(self):
        with pytest.raises(ValidationError):
            Listing.model_validate({**BASE, "season": "Summer", "terms": ["Fall 2026"]})

    def test_neither_rejected(self):
        with pytest.raises(ValidationError):
            Listing.model_validate(BASE)

    def test_to_document_keeps_upstream_shape(self):
        doc = Listing.model_validate({**BASE, "terms": ["Summer 2026"], "extra": 1}).to_document()
        assert doc["terms"] == ["Summer 2026"]
        assert "season" not in doc
        assert "period" not in doc
        assert "extra" not in doc


class TestListing:
    def test_identity(self):
        listing = Listing.model_validate({**BASE, "season": "Summer"})
        assert listing.identity == ("abc", "Acme")

    def test_is_open(self):
        assert Listing.model_validate({**BASE, "season": "Summer"}).is_open
        assert not Listing.model_validate({**BASE, "season": "Summer", "is_visible": False}).is_open
