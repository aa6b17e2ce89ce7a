"""Tests for venue_catalog.py — search merging, enrichment, and the catalog.

The catalog must never hold two entries for one place_id and must not
apply results for a request that was cancelled.
"""

from datetime import datetime

import pytest

from conftest import FakePlaces, make_hit
from geo_math import GeoPoint
from venue_catalog import (
    MAX_RADIUS_M,
    MIN_RADIUS_M,
    SPORT_CRICKET,
    SPORT_FOOTBALL,
    CancelToken,
    Venue,
    VenueCatalog,
    _dedupe_by_place_id,
    apply_opening_hours,
    clamp_radius,
    directions_url,
    fetch_opening_hours,
    fetch_venue_details,
    filter_by_sport,
    open_only,
    search_nearby_venues,
    sorted_by_distance,
    venue_from_hit,
)

CENTER = GeoPoint(51.52, -0.04)


def _venue(place_id, sport=SPORT_FOOTBALL, lat=51.52, lng=-0.04, **kwargs):
    return Venue(place_id=place_id, name=place_id, sport_type=sport, location=GeoPoint(lat, lng), **kwargs)


# =========================================================================
# Search helpers
# =========================================================================

class TestClampRadius:
    def test_within_bounds(self):
        assert clamp_radius(3000) == 3000

    def test_clamped(self):
        assert clamp_radius(10) == MIN_RADIUS_M
        assert clamp_radius(50000) == MAX_RADIUS_M


class TestDedupe:
    def test_first_occurrence_wins(self):
        a1 = _venue("a", SPORT_FOOTBALL)
        a2 = _venue("a", SPORT_CRICKET)
        b = _venue("b")
        assert _dedupe_by_place_id([a1, b, a2]) == [a1, b]

    def test_missing_place_id_dropped(self):
        assert _dedupe_by_place_id([_venue("")]) == []


class TestVenueFromHit:
    def test_basic(self):
        places = FakePlaces()
        hit = make_hit("a", lat=51.5, lng=-0.1, open_now=True)
        hit["rating"] = 4.2
        hit["photos"] = [{"photo_reference": "p1"}]
        v = venue_from_hit(places, hit, SPORT_CRICKET)
        assert v.place_id == "a"
        assert v.sport_type == SPORT_CRICKET
        assert v.location == GeoPoint(51.5, -0.1)
        assert v.address == "a Road"
        assert v.rating == 4.2
        assert v.open_now is True
        assert v.photo_url == "https://photos.test/p1?w=400"

    def test_stadium_excluded(self):
        hit = make_hit("a", types=["stadium", "point_of_interest"])
        assert venue_from_hit(FakePlaces(), hit, SPORT_FOOTBALL) is None

    def test_missing_geometry(self):
        hit = make_hit("a")
        del hit["geometry"]
        assert venue_from_hit(FakePlaces(), hit, SPORT_FOOTBALL) is None


class TestSearchNearbyVenues:
    def test_merges_variants_and_labels_sport(self):
        places = FakePlaces(results={
            "football pitch": [make_hit("a"), make_hit("b")],
            "football recreation ground": [make_hit("b"), make_hit("c")],
            "cricket pitch": [make_hit("a"), make_hit("d")],
            "cricket club": [make_hit("e", types=["stadium"])],
        })
        venues = search_nearby_venues(places, CENTER, 3000)
        assert [v.place_id for v in venues] == ["a", "b", "c", "d"]
        # "a" first appeared under a football variant
        assert venues[0].sport_type == SPORT_FOOTBALL
        assert venues[3].sport_type == SPORT_CRICKET
        assert len(places.nearby_calls) == 4

    def test_failed_variant_is_skipped(self):
        places = FakePlaces(
            results={"cricket club": [make_hit("z")]},
            failing={"football pitch", "football recreation ground", "cricket pitch"},
        )
        venues = search_nearby_venues(places, CENTER)
        assert [v.place_id for v in venues] == ["z"]

    def test_radius_is_clamped(self):
        places = FakePlaces()
        search_nearby_venues(places, CENTER, 25000)
        assert {c[2] for c in places.nearby_calls} == {MAX_RADIUS_M}


# =========================================================================
# Enrichment
# =========================================================================

class TestOpeningHours:
    def test_fetch(self):
        places = FakePlaces(hours={"a": {"open_now": True, "periods": [{"open": {"day": 1, "time": "0900"}}]}})
        assert fetch_opening_hours(places, "a") == {
            "is_open": True,
            "periods": [{"open": {"day": 1, "time": "0900"}}],
        }
        assert places.detail_calls == [("a", ("opening_hours",))]

    def test_fetch_failure_is_none(self):
        assert fetch_opening_hours(FakePlaces(failing={"a"}), "a") is None

    def test_apply_sets_closing_soon(self):
        periods = [{"open": {"day": 3, "time": "0800"}, "close": {"day": 3, "time": "2100"}}]
        now = datetime(2024, 3, 13, 20, 0)
        v = apply_opening_hours(_venue("a"), {"is_open": True, "periods": periods}, now)
        assert v.open_now is True
        assert v.closing_soon is True
        assert v.closes_at == "9pm"
        assert v.periods == periods

    def test_apply_closed_is_not_closing_soon(self):
        periods = [{"open": {"day": 3, "time": "0800"}, "close": {"day": 3, "time": "2100"}}]
        now = datetime(2024, 3, 13, 20, 0)
        v = apply_opening_hours(_venue("a"), {"is_open": False, "periods": periods}, now)
        assert v.closing_soon is False

    def test_apply_none_returns_same(self):
        venue = _venue("a")
        assert apply_opening_hours(venue, None) is venue

    def test_apply_returns_copy(self):
        venue = _venue("a")
        enriched = apply_opening_hours(venue, {"is_open": True, "periods": []})
        assert enriched is not venue
        assert venue.open_now is None


class TestFetchVenueDetails:
    def test_details(self):
        places = FakePlaces(details={"a": {
            "website": "https://club.test",
            "formatted_phone_number": "020 7946 0000",
            "url": "https://maps.google.com/?cid=1",
            "opening_hours": {"open_now": False, "weekday_text": ["Monday: 9AM-5PM"]},
            "photos": [{"photo_reference": f"p{i}"} for i in range(7)],
        }})
        d = fetch_venue_details(places, "a")
        assert d.website == "https://club.test"
        assert d.phone == "020 7946 0000"
        assert d.weekday_text == ["Monday: 9AM-5PM"]
        assert d.is_open is False
        assert len(d.photos) == 5

    def test_failure_is_none(self):
        assert fetch_venue_details(FakePlaces(failing={"a"}), "a") is None


# =========================================================================
# Presentation helpers
# =========================================================================

class TestPresentationHelpers:
    def test_filter_by_sport(self):
        venues = [_venue("a", SPORT_FOOTBALL), _venue("b", SPORT_CRICKET)]
        assert [v.place_id for v in filter_by_sport(venues, [SPORT_CRICKET])] == ["b"]

    def test_open_only(self):
        venues = [_venue("a", open_now=True), _venue("b", open_now=False), _venue("c")]
        assert [v.place_id for v in open_only(venues)] == ["a"]

    def test_sorted_by_distance(self):
        venues = [_venue("far", lat=51.60), _venue("near", lat=51.521)]
        assert [v.place_id for v in sorted_by_distance(venues, CENTER)] == ["near", "far"]

    def test_directions_url(self):
        url = directions_url(_venue("a", lat=51.5, lng=-0.1))
        assert "destination=51.5,-0.1" in url
        assert "travelmode=walking" in url


# =========================================================================
# Catalog
# =========================================================================

class TestVenueCatalog:
    def test_search_adds_and_enriches(self):
        places = FakePlaces(
            results={"football pitch": [make_hit("a"), make_hit("b")]},
            hours={"a": {"open_now": True, "periods": []}},
        )
        catalog = VenueCatalog(places)
        fresh = catalog.search(CENTER, 3000)

        assert [v.place_id for v in fresh] == ["a", "b"]
        assert catalog.get("a").open_now is True
        assert len(catalog) == 2

    def test_second_search_adds_only_new(self):
        places = FakePlaces(results={"football pitch": [make_hit("a")]})
        catalog = VenueCatalog(places)
        catalog.search(CENTER)
        places.results["cricket pitch"] = [make_hit("a"), make_hit("b")]

        fresh = catalog.search(CENTER)
        assert [v.place_id for v in fresh] == ["b"]
        assert sorted(v.place_id for v in catalog.venues) == ["a", "b"]

    def test_no_enrichment_when_nothing_new(self):
        places = FakePlaces(results={"football pitch": [make_hit("a")]})
        catalog = VenueCatalog(places)
        catalog.search(CENTER)
        places.detail_calls.clear()

        assert catalog.search(CENTER) == []
        assert places.detail_calls == []

    def test_enrichment_failure_keeps_other_venues(self):
        places = FakePlaces(
            results={"football pitch": [make_hit("a"), make_hit("b")]},
            hours={"b": {"open_now": True, "periods": []}},
            failing={"a"},
        )
        catalog = VenueCatalog(places)
        catalog.search(CENTER)
        assert catalog.get("a").open_now is None
        assert catalog.get("b").open_now is True
        assert len(catalog) == 2

    def test_closed_owner_token_applies_nothing(self):
        places = FakePlaces(results={"football pitch": [make_hit("a")]})
        catalog = VenueCatalog(places)
        token = CancelToken()
        token.cancel()
        assert catalog.search(CENTER, token=token) == []
        assert len(catalog) == 0

    def test_enrich_preserves_order(self):
        places = FakePlaces(hours={pid: {"open_now": True, "periods": []} for pid in "abcdefgh"})
        catalog = VenueCatalog(places, max_workers=3)
        venues = [_venue(pid) for pid in "abcdefgh"]
        enriched = catalog.enrich(venues)
        assert [v.place_id for v in enriched] == list("abcdefgh")
        assert all(v.open_now for v in enriched)

    def test_merge_drops_unknown_ids(self):
        catalog = VenueCatalog(FakePlaces())
        catalog.add_fresh([_venue("a")])
        replaced = catalog.merge_enriched([_venue("a", open_now=True), _venue("ghost", open_now=True)])
        assert replaced == 1
        assert [v.place_id for v in catalog.venues] == ["a"]
        assert catalog.get("a").open_now is True

    def test_merge_skipped_when_cancelled(self):
        catalog = VenueCatalog(FakePlaces())
        catalog.add_fresh([_venue("a")])
        token = CancelToken()
        token.cancel()
        assert catalog.merge_enriched([_venue("a", open_now=True)], token) == 0
        assert catalog.get("a").open_now is None

    def test_add_fresh_never_duplicates(self):
        catalog = VenueCatalog(FakePlaces())
        catalog.add_fresh([_venue("a"), _venue("b")])
        assert [v.place_id for v in catalog.add_fresh([_venue("b"), _venue("c")])] == ["c"]
        assert len(catalog) == 3
        assert "c" in catalog
        assert "z" not in catalog

    def test_details(self):
        places = FakePlaces(details={"a": {"website": "https://club.test"}})
        catalog = VenueCatalog(places)
        assert catalog.details("a").website == "https://club.test"


class TestCancelToken:
    def test_starts_live(self):
        assert CancelToken().cancelled is False

    def test_cancel(self):
        token = CancelToken()
        token.cancel()
        assert token.cancelled is True
