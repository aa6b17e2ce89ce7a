"""
Grid-bucketed weather cache for one map session.

Panning the map asks for weather at every new visible centre.  Points are
bucketed by rounding to GRID_DECIMALS decimal degrees (~1.1 km of latitude,
less of longitude away from the equator) and each bucket is fetched at most
once per session.  Cached bundles are never evicted or refreshed; sessions
are short and cells are coarse.  A long-running host should wrap this with
an LRU-by-cell or TTL policy.

The headline place name is pinned separately: the name from the first
successful fetch is stamped onto every bundle shown afterwards, so the
headline does not flicker between neighbourhood names while panning.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from geo_math import GeoPoint
from pc_trace import get_trace
from weather_client import HourlySample, PastWeather, fetch_past_weather

logger = logging.getLogger(__name__)

# Bucket size of the cache grid, in decimal places of a degree.
GRID_DECIMALS = 2


@dataclass(frozen=True)
class WeatherBundle:
    """Everything fetched for one grid cell.  Treat as read-only."""
    current: Dict[str, Any]
    forecast: Optional[Dict[str, Any]] = None
    air_quality: Optional[Dict[str, Any]] = None
    uv_index: Optional[float] = None
    recent_rain_mm: float = 0.0
    past_hourly: Tuple[HourlySample, ...] = field(default_factory=tuple)

    @property
    def place_name(self) -> Optional[str]:
        return self.current.get("name") or None


def grid_key(point: GeoPoint) -> str:
    """Round coordinates to GRID_DECIMALS places (~1 km) for the cache key.

    Nearby points share one bundle: no reason to re-fetch for a map
    centre that moved a few hundred metres.
    """
    # + 0.0 folds -0.0 into 0.0 so both sides of the meridian share a cell
    lat = round(point.lat, GRID_DECIMALS) + 0.0
    lng = round(point.lng, GRID_DECIMALS) + 0.0
    return f"{lat:.{GRID_DECIMALS}f},{lng:.{GRID_DECIMALS}f}"


def apply_display(bundle: WeatherBundle, pinned_name: Optional[str]) -> Dict[str, Any]:
    """Copy of bundle.current with its place name replaced by *pinned_name*."""
    current = dict(bundle.current)
    if pinned_name:
        current["name"] = pinned_name
    return current


class WeatherCache:
    """Session-scoped weather bundles keyed by grid cell."""

    def __init__(
        self,
        weather_client,
        past_fetcher: Callable[[float, float], PastWeather] = fetch_past_weather,
    ):
        self.weather_client = weather_client
        self.past_fetcher = past_fetcher
        self._bundles: Dict[str, WeatherBundle] = {}
        self._pinned_name: Optional[str] = None
        self._pinned = False
        self._pin_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._bundles)

    def __contains__(self, point: GeoPoint) -> bool:
        return grid_key(point) in self._bundles

    @property
    def pinned_name(self) -> Optional[str]:
        return self._pinned_name

    def peek(self, point: GeoPoint) -> Optional[WeatherBundle]:
        """Cached bundle for *point*'s cell without fetching."""
        return self._bundles.get(grid_key(point))

    def _fetch(self, point: GeoPoint) -> Optional[WeatherBundle]:
        try:
            live = self.weather_client.current_and_forecast(point.lat, point.lng)
        except Exception:
            logger.warning(
                "Weather fetch failed for (%.4f, %.4f)",
                point.lat, point.lng, exc_info=True,
            )
            return None

        past = self.past_fetcher(point.lat, point.lng)
        return WeatherBundle(
            current=live["current"],
            forecast=live.get("forecast"),
            air_quality=live.get("air_quality"),
            uv_index=live.get("uv_index"),
            recent_rain_mm=past.total_rain_mm,
            past_hourly=tuple(past.past_hourly),
        )

    def get(self, point: GeoPoint) -> Optional[WeatherBundle]:
        """Bundle for *point*'s grid cell, fetching on first use.

        Returns None when the provider fails; nothing is cached in that case
        so a later call retries.  Two overlapping misses for one cell both
        fetch; the second write replaces an equivalent bundle.
        """
        key = grid_key(point)
        cached = self._bundles.get(key)
        if cached is not None:
            trace = get_trace()
            if trace:
                trace.record_cache_hit("weather_cell")
            return cached

        bundle = self._fetch(point)
        if bundle is None:
            return None

        self._bundles[key] = bundle
        with self._pin_lock:
            if not self._pinned:
                self._pinned = True
                self._pinned_name = bundle.place_name
                logger.info("Pinned headline location name: %s", self._pinned_name)
        logger.debug("Cached weather for cell %s (%d cells)", key, len(self._bundles))
        return bundle

    def display(self, bundle: WeatherBundle) -> Dict[str, Any]:
        """Current weather for display, carrying the pinned name."""
        return apply_display(bundle, self._pinned_name)
