"""
Venue discovery — football and cricket pitches near a point.

Nearby Search returns at most 20 results per call, so each sport is queried
with a couple of keyword variants and the batches are merged, deduplicated
by place_id (first occurrence wins), and stripped of stadiums (professional
grounds nobody can book).

VenueCatalog is the session's collection of discovered venues.  It only
ever grows, never holds two entries for one place_id, and enriches newly
found venues with opening hours in the background.  Enriched copies replace
the originals in one locked read-then-replace so a reader never sees a
duplicate or a half-merged list.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from geo_math import GeoPoint, distance_km
from opening_hours import closing_time_str, is_closing_soon
from pc_trace import get_trace, set_trace

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

SPORT_FOOTBALL = "football"
SPORT_CRICKET = "cricket"
SPORTS = (SPORT_FOOTBALL, SPORT_CRICKET)

# (keyword, sport) pairs.  Order matters: on duplicates the first variant's
# sport label is kept.
SEARCH_VARIANTS: Tuple[Tuple[str, str], ...] = (
    ("football pitch", SPORT_FOOTBALL),
    ("football recreation ground", SPORT_FOOTBALL),
    ("cricket pitch", SPORT_CRICKET),
    ("cricket club", SPORT_CRICKET),
)

EXCLUDED_PLACE_TYPES = {"stadium"}

DEFAULT_RADIUS_M = 3000
MIN_RADIUS_M = 100
MAX_RADIUS_M = 10000

LIST_PHOTO_WIDTH = 400
DETAIL_PHOTO_WIDTH = 800
MAX_DETAIL_PHOTOS = 5

ENRICH_MAX_WORKERS = 6


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class Venue:
    """A bookable pitch as surfaced to the map and search list."""
    place_id: str
    name: str
    sport_type: str                 # "football" | "cricket"
    location: GeoPoint
    address: str = ""
    rating: Optional[float] = None
    open_now: Optional[bool] = None
    periods: Optional[List[Dict]] = None
    closing_soon: bool = False
    closes_at: Optional[str] = None  # e.g. "9pm"
    photo_url: Optional[str] = None


@dataclass
class VenueDetails:
    """Extra place info fetched when a venue is opened."""
    website: Optional[str] = None
    phone: Optional[str] = None
    maps_url: Optional[str] = None
    weekday_text: List[str] = field(default_factory=list)
    is_open: Optional[bool] = None
    periods: List[Dict] = field(default_factory=list)
    photo_url: Optional[str] = None
    photos: List[str] = field(default_factory=list)


class CancelToken:
    """Marks a request whose results are no longer wanted.

    Cancelling does not abort the underlying HTTP call; it only tells the
    code receiving the result to drop it.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _is_cancelled(token: Optional[CancelToken]) -> bool:
    return token is not None and token.cancelled


# =============================================================================
# SEARCH
# =============================================================================

def clamp_radius(radius_meters: float) -> int:
    return max(MIN_RADIUS_M, min(MAX_RADIUS_M, int(round(radius_meters))))


def _dedupe_by_place_id(venues: Iterable[Venue]) -> List[Venue]:
    """Remove duplicate venues by place_id, preserving first occurrence."""
    seen: set = set()
    unique: List[Venue] = []
    for v in venues:
        if v.place_id and v.place_id not in seen:
            seen.add(v.place_id)
            unique.append(v)
    return unique


def _first_photo_url(places, photos: Optional[List[Dict]], max_width: int) -> Optional[str]:
    if not photos:
        return None
    ref = photos[0].get("photo_reference")
    return places.photo_url(ref, max_width) if ref else None


def venue_from_hit(places, hit: Dict, sport_type: str) -> Optional[Venue]:
    """Build a Venue from a Nearby Search result; None for unusable hits."""
    types = hit.get("types") or []
    if EXCLUDED_PLACE_TYPES.intersection(types):
        return None

    place_id = hit.get("place_id")
    location = (hit.get("geometry") or {}).get("location") or {}
    if not place_id or "lat" not in location or "lng" not in location:
        return None

    return Venue(
        place_id=place_id,
        name=hit.get("name", ""),
        sport_type=sport_type,
        location=GeoPoint(location["lat"], location["lng"]),
        address=hit.get("vicinity") or "",
        rating=hit.get("rating"),
        open_now=(hit.get("opening_hours") or {}).get("open_now"),
        photo_url=_first_photo_url(places, hit.get("photos"), LIST_PHOTO_WIDTH),
    )


def search_nearby_venues(places, center: GeoPoint, radius_meters: float = DEFAULT_RADIUS_M) -> List[Venue]:
    """Run every keyword variant and merge the results.

    A failed variant contributes nothing; the other variants still count.
    """
    radius = clamp_radius(radius_meters)
    merged: List[Venue] = []
    for keyword, sport_type in SEARCH_VARIANTS:
        try:
            hits = places.places_nearby(center.lat, center.lng, radius, keyword=keyword)
        except Exception:
            logger.warning(
                "Nearby search '%s' failed at (%.4f, %.4f)",
                keyword, center.lat, center.lng, exc_info=True,
            )
            continue
        for hit in hits:
            venue = venue_from_hit(places, hit, sport_type)
            if venue is not None:
                merged.append(venue)
    return _dedupe_by_place_id(merged)


# =============================================================================
# ENRICHMENT
# =============================================================================

def fetch_opening_hours(places, place_id: str) -> Optional[Dict]:
    """Lightweight details call for opening hours only.

    Returns {'is_open', 'periods'} or None on any failure.
    """
    try:
        details = places.place_details(place_id, fields=["opening_hours"])
    except Exception:
        logger.debug("Opening hours fetch failed for %s", place_id, exc_info=True)
        return None

    hours = details.get("opening_hours") or {}
    return {
        "is_open": hours.get("open_now"),
        "periods": hours.get("periods") or [],
    }


def apply_opening_hours(venue: Venue, hours: Optional[Dict], now: Optional[datetime] = None) -> Venue:
    """Return an enriched copy of *venue*; the venue itself when hours is None."""
    if not hours:
        return venue
    is_open = hours.get("is_open")
    periods = hours.get("periods") or []
    return replace(
        venue,
        open_now=is_open if is_open is not None else venue.open_now,
        periods=periods,
        closing_soon=bool(is_open) and is_closing_soon(periods, now),
        closes_at=closing_time_str(periods, now),
    )


def fetch_venue_details(places, place_id: str) -> Optional[VenueDetails]:
    """Website, phone, Maps URL, hours and up to 5 photos; None on failure."""
    try:
        place = places.place_details(place_id)
    except Exception:
        logger.warning("Place details fetch failed for %s", place_id, exc_info=True)
        return None

    hours = place.get("opening_hours") or {}
    photos = place.get("photos") or []
    return VenueDetails(
        website=place.get("website"),
        phone=place.get("formatted_phone_number"),
        maps_url=place.get("url"),
        weekday_text=hours.get("weekday_text") or [],
        is_open=hours.get("open_now"),
        periods=hours.get("periods") or [],
        photo_url=_first_photo_url(places, photos, 600),
        photos=[
            places.photo_url(p["photo_reference"], DETAIL_PHOTO_WIDTH)
            for p in photos[:MAX_DETAIL_PHOTOS]
            if p.get("photo_reference")
        ],
    )


def directions_url(venue: Venue) -> str:
    """Google Maps walking directions to the venue."""
    return (
        "https://www.google.com/maps/dir/?api=1"
        f"&destination={venue.location.lat},{venue.location.lng}&travelmode=walking"
    )


# =============================================================================
# PRESENTATION HELPERS
# =============================================================================

def filter_by_sport(venues: Iterable[Venue], sports: Iterable[str]) -> List[Venue]:
    wanted = set(sports)
    return [v for v in venues if v.sport_type in wanted]


def open_only(venues: Iterable[Venue]) -> List[Venue]:
    return [v for v in venues if v.open_now]


def sorted_by_distance(venues: Iterable[Venue], origin: GeoPoint) -> List[Venue]:
    return sorted(venues, key=lambda v: distance_km(origin, v.location))


# =============================================================================
# CATALOG
# =============================================================================

class VenueCatalog:
    """Deduplicated, progressively enriched venues for one session."""

    def __init__(self, places, max_workers: int = ENRICH_MAX_WORKERS):
        self.places = places
        self.max_workers = max_workers
        self._venues: List[Venue] = []
        self._known_ids: set = set()
        self._lock = threading.Lock()

    @property
    def venues(self) -> List[Venue]:
        with self._lock:
            return list(self._venues)

    def __len__(self) -> int:
        with self._lock:
            return len(self._venues)

    def __contains__(self, place_id: str) -> bool:
        with self._lock:
            return place_id in self._known_ids

    def get(self, place_id: str) -> Optional[Venue]:
        with self._lock:
            for v in self._venues:
                if v.place_id == place_id:
                    return v
        return None

    def add_fresh(self, raw: List[Venue]) -> List[Venue]:
        """Append venues whose place_id is not yet known; return those."""
        with self._lock:
            fresh = [v for v in raw if v.place_id not in self._known_ids]
            for v in fresh:
                self._known_ids.add(v.place_id)
            self._venues.extend(fresh)
        return fresh

    def search(
        self,
        center: GeoPoint,
        radius_meters: float = DEFAULT_RADIUS_M,
        token: Optional[CancelToken] = None,
    ) -> List[Venue]:
        """Search around *center*, add new venues, enrich them.

        Returns the newly added venues in their final (enriched where
        possible) state.  No enrichment calls are made when nothing new
        was found.

        *token* is the owner's lifetime token (the session's): once it is
        cancelled nothing more is added or merged.
        """
        raw = search_nearby_venues(self.places, center, radius_meters)
        if _is_cancelled(token):
            logger.info("Venue search at (%.4f, %.4f) cancelled; dropping results", center.lat, center.lng)
            return []

        fresh = self.add_fresh(raw)
        logger.info(
            "Venue search at (%.4f, %.4f): %d hits, %d new",
            center.lat, center.lng, len(raw), len(fresh),
        )
        if not fresh:
            return []

        enriched = self.enrich(fresh)
        self.merge_enriched(enriched, token)
        return [self.get(v.place_id) or v for v in fresh]

    def enrich(self, venues: List[Venue], now: Optional[datetime] = None) -> List[Venue]:
        """Fetch opening hours for each venue in parallel.

        Order of the returned list matches *venues*.  A venue whose lookup
        fails comes back unchanged.
        """
        if not venues:
            return []

        parent_trace = get_trace()

        def _fetch(venue: Venue) -> Optional[Dict]:
            set_trace(parent_trace)
            return fetch_opening_hours(self.places, venue.place_id)

        results: Dict[int, Venue] = {}
        workers = min(self.max_workers, len(venues))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(_fetch, v): i for i, v in enumerate(venues)}
            for future in as_completed(futures):
                i = futures[future]
                try:
                    results[i] = apply_opening_hours(venues[i], future.result(), now)
                except Exception:
                    logger.warning(
                        "Enrichment failed for %s", venues[i].place_id, exc_info=True,
                    )
                    results[i] = venues[i]
        return [results[i] for i in range(len(venues))]

    def merge_enriched(self, enriched: List[Venue], token: Optional[CancelToken] = None) -> int:
        """Replace catalog entries with their enriched copies.

        Entries for place_ids no longer in the catalog are dropped, as is
        the whole batch when *token* has been cancelled.  Returns the number
        of entries replaced.
        """
        if _is_cancelled(token):
            logger.info("Dropping %d enriched venues for cancelled request", len(enriched))
            return 0

        with self._lock:
            current_ids = {v.place_id for v in self._venues}
            accepted = [v for v in enriched if v.place_id in current_ids]
            accepted_ids = {v.place_id for v in accepted}
            self._venues = [
                v for v in self._venues if v.place_id not in accepted_ids
            ] + accepted
        return len(accepted)

    def details(self, place_id: str) -> Optional[VenueDetails]:
        return fetch_venue_details(self.places, place_id)
