"""
Weather providers — OpenWeather for current conditions and forecast,
Open-Meteo for the recent hourly history that drives pitch conditions.

Data sources:
  - OpenWeather 2.5 API (api.openweathermap.org): current weather, 5-day/3-hour
    forecast, air pollution, UV index.  Needs OPENWEATHER_API_KEY.
  - Open-Meteo Forecast API (api.open-meteo.com) with past_days=2: daily
    precipitation sums and hourly temperature/weather codes.  No key.

Limitations:
  - Open-Meteo hourly data is model output on a ~1-11 km grid; a pitch in a
    rain shadow or under a passing shower may differ from its grid cell.
  - The hourly series covers the two past days plus all of today, so it
    includes a few forecast hours after "now".
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from pc_trace import get_trace

logger = logging.getLogger(__name__)


_OPENWEATHER_BASE = "https://api.openweathermap.org/data/2.5"
_OPEN_METEO_BASE = "https://api.open-meteo.com/v1/forecast"
_API_TIMEOUT = 10  # seconds

# Daily precipitation entries summed for "recent rain": the two past days.
_RECENT_RAIN_DAYS = 2


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class HourlySample:
    """One Open-Meteo hourly entry (local time of the location)."""
    time: Optional[datetime]
    temp_c: Optional[float]
    weather_code: Optional[int]


@dataclass
class PastWeather:
    """Recent rainfall and the hourly series it was derived from."""
    total_rain_mm: float = 0.0
    past_hourly: List[HourlySample] = field(default_factory=list)


def _parse_time(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.debug("Unparseable hourly timestamp %r", raw)
        return None


def _traced_get(service: str, endpoint: str, url: str, params: dict) -> requests.Response:
    """GET with trace recording.  Timeouts are recorded then re-raised."""
    trace = get_trace()
    t0 = time.time()
    try:
        resp = requests.get(url, params=params, timeout=_API_TIMEOUT)
    except requests.Timeout:
        if trace:
            trace.record_api_call(
                service=service,
                endpoint=endpoint,
                elapsed_ms=int((time.time() - t0) * 1000),
                status_code=0,
                provider_status="TIMEOUT",
            )
        raise

    if trace:
        trace.record_api_call(
            service=service,
            endpoint=endpoint,
            elapsed_ms=int((time.time() - t0) * 1000),
            status_code=resp.status_code,
            provider_status="OK" if resp.ok else "ERROR",
        )
    return resp


# =============================================================================
# OPENWEATHER
# =============================================================================

class OpenWeatherClient:
    """Client for the OpenWeather 2.5 endpoints used by the weather bar."""

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.base_url = _OPENWEATHER_BASE

    def _get(self, endpoint: str, lat: float, lng: float, metric: bool = True) -> requests.Response:
        params = {"lat": lat, "lon": lng, "appid": self.api_key}
        if metric:
            params["units"] = "metric"
        return _traced_get("openweather", endpoint, f"{self.base_url}/{endpoint}", params)

    def _optional(self, endpoint: str, lat: float, lng: float) -> Optional[Dict[str, Any]]:
        """Fetch an endpoint whose absence only blanks one tile."""
        try:
            resp = self._get(endpoint, lat, lng, metric=False)
            if not resp.ok:
                logger.warning(
                    "OpenWeather %s returned %d for (%.2f, %.2f)",
                    endpoint, resp.status_code, lat, lng,
                )
                return None
            return resp.json()
        except Exception:
            logger.warning(
                "OpenWeather %s request failed for (%.2f, %.2f)",
                endpoint, lat, lng, exc_info=True,
            )
            return None

    def current_and_forecast(self, lat: float, lng: float) -> Dict[str, Any]:
        """Current weather, forecast, air quality and UV index.

        Raises ValueError when current weather or forecast is unavailable;
        air quality and UV index degrade to None.
        """
        current = self._get("weather", lat, lng)
        forecast = self._get("forecast", lat, lng)
        if not current.ok or not forecast.ok:
            raise ValueError(
                f"OpenWeather failed: weather={current.status_code} forecast={forecast.status_code}"
            )

        air_quality = self._optional("air_pollution", lat, lng)
        uvi = self._optional("uvi", lat, lng)

        return {
            "current": current.json(),
            "forecast": forecast.json(),
            "air_quality": air_quality,
            "uv_index": (uvi or {}).get("value"),
        }


# =============================================================================
# OPEN-METEO
# =============================================================================

def _parse_past_weather(data: dict) -> PastWeather:
    daily = data.get("daily") or {}
    precip = daily.get("precipitation_sum") or []
    # [day before yesterday, yesterday, today]; today is excluded
    total_rain = sum(p or 0 for p in precip[:_RECENT_RAIN_DAYS])

    hourly = data.get("hourly") or {}
    times = hourly.get("time") or []
    temps = hourly.get("temperature_2m") or []
    codes = hourly.get("weather_code") or []

    samples = [
        HourlySample(
            time=_parse_time(t),
            temp_c=temps[i] if i < len(temps) else None,
            weather_code=codes[i] if i < len(codes) else None,
        )
        for i, t in enumerate(times)
    ]
    return PastWeather(total_rain_mm=float(total_rain), past_hourly=samples)


def fetch_past_weather(lat: float, lng: float) -> PastWeather:
    """Rainfall over the two past days plus hourly history.

    Returns an empty PastWeather (0 mm, no hours) on any failure.
    """
    params = {
        "latitude": lat,
        "longitude": lng,
        "daily": "precipitation_sum",
        "hourly": "temperature_2m,weather_code",
        "past_days": _RECENT_RAIN_DAYS,
        "forecast_days": 1,
        "timezone": "auto",
    }
    try:
        resp = _traced_get("open_meteo", "forecast_past_days", _OPEN_METEO_BASE, params)
        if not resp.ok:
            logger.warning(
                "Open-Meteo API returned %d for (%.2f, %.2f)",
                resp.status_code, lat, lng,
            )
            return PastWeather()
        return _parse_past_weather(resp.json())
    except requests.Timeout:
        logger.warning("Open-Meteo API timed out for (%.2f, %.2f)", lat, lng)
        return PastWeather()
    except Exception:
        logger.warning(
            "Open-Meteo API request failed for (%.2f, %.2f)",
            lat, lng, exc_info=True,
        )
        return PastWeather()
