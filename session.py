"""
PitchSession — the per-user state behind the map and weather screens.

One session owns everything that lives for a visit: the searched-area
record, the venue catalog, the weather grid cache with its pinned place
name, and the per-venue condition scores.  Nothing is module-global, so two
sessions never share state and dropping a session drops its caches.

Network work runs on a small session-owned thread pool and is handed back
as futures.  Results that arrive after close() are dropped rather than
applied; a caller that cancels its own CancelToken only stops seeing the
result.
"""

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from condition_model import (
    MUDDINESS,
    WETNESS,
    ConditionScore,
    ConditionScoreCache,
    calc_pitch_condition,
    color_band,
    condition_label,
)
from geo_math import GeoPoint, distance_km, walking_minutes
from hourly_timeline import TimelineEntry, build_hourly_timeline
from location import get_user_location
from pc_trace import TraceContext, get_trace, set_trace
from search_coverage import CoverageTracker, SearchCircle, Viewport
from venue_catalog import (
    DEFAULT_RADIUS_M,
    CancelToken,
    Venue,
    VenueCatalog,
    clamp_radius,
)
from weather_cache import WeatherBundle, WeatherCache
from weather_client import fetch_past_weather
from weather_display import (
    AirQualitySummary,
    RainLikelihood,
    WeatherDisplay,
    air_quality_summary,
    get_background,
    rain_likelihood,
    transform_weather_for_display,
)

logger = logging.getLogger(__name__)

SESSION_MAX_WORKERS = 4


@dataclass
class WeatherView:
    """Everything the weather bar and weather screen render for one point."""
    current: Dict[str, Any]          # OpenWeather current, pinned name applied
    display: WeatherDisplay
    timeline: List[TimelineEntry]
    rain: RainLikelihood
    air: AirQualitySummary
    background: str
    recent_rain_mm: float


@dataclass
class VenueCard:
    """A venue plus the derived numbers shown on its card."""
    venue: Venue
    distance_km: Optional[float]
    walking_minutes: Optional[int]
    condition: Optional[ConditionScore]

    @property
    def wetness_label(self) -> Optional[str]:
        return condition_label(self.condition.wetness_pct, WETNESS) if self.condition else None

    @property
    def muddiness_label(self) -> Optional[str]:
        return condition_label(self.condition.muddiness_pct, MUDDINESS) if self.condition else None

    @property
    def wetness_band(self) -> Optional[str]:
        return color_band(self.condition.wetness_pct) if self.condition else None

    @property
    def muddiness_band(self) -> Optional[str]:
        return color_band(self.condition.muddiness_pct) if self.condition else None


class PitchSession:
    """Session-scoped coordinator for coverage, venues, weather and scores."""

    def __init__(
        self,
        places,
        weather_client,
        locate: Optional[Callable[[], Optional[GeoPoint]]] = None,
        past_fetcher=fetch_past_weather,
        max_workers: int = SESSION_MAX_WORKERS,
        trace_id: Optional[str] = None,
    ):
        self.trace = TraceContext(trace_id=trace_id or uuid.uuid4().hex[:12])
        self.locate = locate
        self.coverage = CoverageTracker()
        self.catalog = VenueCatalog(places)
        self.weather = WeatherCache(weather_client, past_fetcher)
        self.conditions = ConditionScoreCache()
        self.location: Optional[GeoPoint] = None
        self._token = CancelToken()
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Stop accepting work and drop any results still in flight."""
        if self._closed:
            return
        self._closed = True
        self._token.cancel()
        self._executor.shutdown(wait=False)
        self.trace.log_summary()

    def _traced(self, fn, *args, **kwargs):
        previous = get_trace()
        set_trace(self.trace)
        try:
            return fn(*args, **kwargs)
        finally:
            set_trace(previous)

    def _check_open(self):
        if self._closed:
            raise RuntimeError("PitchSession is closed")

    def _submit(self, fn, *args, **kwargs) -> Future:
        self._check_open()
        return self._executor.submit(self._traced, fn, *args, **kwargs)

    def start(self, radius_meters: float = DEFAULT_RADIUS_M) -> Optional[WeatherView]:
        """Resolve the location, load its weather, and search around it.

        Blocks until the first search (including enrichment) has finished.
        """
        self.location = get_user_location(self.locate)
        logger.info("Session %s starting at (%.4f, %.4f)",
                    self.trace.trace_id, self.location.lat, self.location.lng)
        view = self.refresh_weather(self.location)
        self.search_area(self.location, radius_meters).result()
        return view

    # ------------------------------------------------------------------
    # Venues
    # ------------------------------------------------------------------

    def needs_search(self, viewport: Optional[Viewport]) -> bool:
        """Should the UI offer "search this area" for *viewport*?"""
        return not self.coverage.is_covered(viewport)

    def search_area(
        self,
        center: GeoPoint,
        radius_meters: float = DEFAULT_RADIUS_M,
        token: Optional[CancelToken] = None,
    ) -> Future:
        """Record the area as searched, then search it in the background.

        The circle is recorded before the future is submitted so an
        overlapping viewport checked while this search is pending already
        reads as covered.  The recorded radius is the clamped search radius,
        never the larger requested one.  The future resolves to the list of
        newly added venues, or [] when *token* was cancelled meanwhile; the
        venues are still added to the catalog.
        """
        self._check_open()
        radius = clamp_radius(radius_meters)
        self.coverage.record_search(center, radius)
        return self._submit(self._search, center, radius, token)

    def _search(self, center: GeoPoint, radius: int, token: Optional[CancelToken]) -> List[Venue]:
        # A cancelled caller gets nothing back; only close() drops the results.
        try:
            fresh = self.catalog.search(center, radius, self._token)
        except Exception:
            logger.error("Venue search failed at (%.4f, %.4f)", center.lat, center.lng, exc_info=True)
            return []
        if token is not None and token.cancelled:
            logger.debug("Search at (%.4f, %.4f) no longer wanted by caller", center.lat, center.lng)
            return []
        return fresh

    @property
    def venues(self) -> List[Venue]:
        return self.catalog.venues

    @property
    def searched_circles(self) -> List[SearchCircle]:
        return self.coverage.circles

    # ------------------------------------------------------------------
    # Weather
    # ------------------------------------------------------------------

    def _view(self, bundle: WeatherBundle) -> WeatherView:
        current = self.weather.display(bundle)
        return WeatherView(
            current=current,
            display=transform_weather_for_display(current),
            timeline=build_hourly_timeline(current, bundle.forecast, bundle.past_hourly),
            rain=rain_likelihood(current, bundle.forecast),
            air=air_quality_summary(bundle.air_quality, bundle.uv_index),
            background=get_background(current),
            recent_rain_mm=bundle.recent_rain_mm,
        )

    def refresh_weather(self, point: GeoPoint) -> Optional[WeatherView]:
        """Weather for *point* with the pinned headline name; None on failure."""
        bundle = self._traced(self.weather.get, point)
        if bundle is None:
            return None
        return self._view(bundle)

    def refresh_weather_async(self, point: GeoPoint, token: Optional[CancelToken] = None) -> Future:
        """Like refresh_weather; resolves to None when cancelled meanwhile."""
        effective = _LinkedToken(self._token, token)

        def _load() -> Optional[WeatherView]:
            view = self.refresh_weather(point)
            return None if effective.cancelled else view

        return self._submit(_load)

    # ------------------------------------------------------------------
    # Pitch conditions
    # ------------------------------------------------------------------

    def _compute_condition(self, venue: Venue) -> Optional[ConditionScore]:
        bundle = self.weather.get(venue.location)
        if bundle is None:
            return None
        return calc_pitch_condition(bundle.current, bundle.recent_rain_mm, bundle.past_hourly)

    def pitch_condition(self, venue: Venue, token: Optional[CancelToken] = None) -> Optional[ConditionScore]:
        """Wetness/muddiness for a venue, computed once per session.

        A score that lands after *token* is cancelled is still cached but
        not returned.
        """
        if venue.place_id in self.conditions:
            self.trace.record_cache_hit("condition_score")
            return self.conditions.get(venue.place_id)

        score = self._traced(
            self.conditions.get_or_compute,
            venue.place_id,
            lambda: self._compute_condition(venue),
        )
        if _LinkedToken(self._token, token).cancelled:
            return None
        return score

    def pitch_condition_async(self, venue: Venue, token: Optional[CancelToken] = None) -> Future:
        return self._submit(self.pitch_condition, venue, token)

    def venue_card(self, venue: Venue, with_condition: bool = True) -> VenueCard:
        dist = distance_km(self.location, venue.location) if self.location else None
        return VenueCard(
            venue=venue,
            distance_km=dist,
            walking_minutes=walking_minutes(dist) if dist is not None else None,
            condition=self.pitch_condition(venue) if with_condition else None,
        )


class _LinkedToken(CancelToken):
    """Cancelled when either the session or the caller's token is."""

    def __init__(self, session_token: CancelToken, caller_token: Optional[CancelToken]):
        super().__init__()
        self._tokens = [t for t in (session_token, caller_token) if t is not None]

    @property
    def cancelled(self) -> bool:
        return super().cancelled or any(t.cancelled for t in self._tokens)
