"""Tests for listings.json validation and post-age filtering."""

from listingwatch.pipeline.validator import filter_recent, is_recent, parse_listings

NOW = 1_700_000_000


def raw_listing(**kwargs):
    defaults = {
        "id": "1", "company_name": "Acme", "title": "Intern",
        "active": True, "is_visible": True,
        "date_posted": NOW, "date_updated": NOW, "season": "Summer",
    }
    defaults.update(kwargs)
    return defaults


class TestParseListings:
    def test_keeps_order(self):
        listings = parse_listings([raw_listing(id="b"), raw_listing(id="a")])
        assert [l.id for l in listings] == ["b", "a"]

    def test_drops_invalid(self):
        raw = [
            raw_listing(id="1"),
            raw_listing(id="2", terms=["Fall"]),
            {"id": "3"},
            "garbage",
            raw_listing(id="4"),
        ]
        assert [l.id for l in parse_listings(raw)] == ["1", "4"]

    def test_non_list(self):
        assert parse_listings({"listings": []}) == []
        assert parse_listings(None) == []


class TestPostAge:
    def test_recent(self):
        listings = parse_listings([raw_listing(date_posted=NOW - 60)])
        assert is_recent(listings[0], max_age=3600, now=NOW)

    def test_stale(self):
        listings = parse_listings([raw_listing(date_posted=NOW - 7200)])
        assert not is_recent(listings[0], max_age=3600, now=NOW)

    def test_filter_recent(self):
        listings = parse_listings([
            raw_listing(id="old", date_posted=NOW - 10_000),
            raw_listing(id="new", date_posted=NOW - 10),
        ])
        assert [l.id for l in filter_recent(listings, max_age=3600, now=NOW)] == ["new"]
