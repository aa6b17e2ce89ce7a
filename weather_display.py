"""
Display-ready values derived from raw OpenWeather responses: the headline
card, background scene, rain likelihood, and air quality / UV tiles.

Upstream fields are often missing (no visibility over the sea, no wind
direction in calm air); every one of them has a default here so a thin
response still renders.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from weather_codes import current_condition, icon_key, is_raining

DEFAULT_VISIBILITY_M = 10000
METERS_PER_MILE = 1609.34
MS_TO_KMH = 3.6

RAIN_LIKELY_PCT = 50

AQI_LABELS = ("Good", "Fair", "Moderate", "Poor", "Very Poor")

# (max UV index inclusive, label)
UV_BANDS = (
    (2, "Low"),
    (5, "Moderate"),
    (7, "High"),
    (10, "Very High"),
)
UV_TOP_LABEL = "Extreme"


@dataclass(frozen=True)
class WeatherDisplay:
    temp: int
    feels_like: int
    description: str
    humidity: Optional[int]
    visibility_mi: int
    wind_speed_kmh: int
    wind_deg: int
    icon_key: str
    city_name: Optional[str]


@dataclass(frozen=True)
class RainLikelihood:
    is_raining: bool
    rain_pct: Optional[int]
    rain_label: Optional[str]


@dataclass(frozen=True)
class AirQualitySummary:
    aqi_index: Optional[int]
    aqi_label: Optional[str]
    uv_label: Optional[str]


def _round(value: Optional[float], default: int = 0) -> int:
    if value is None:
        return default
    return int(math.floor(value + 0.5))


def transform_weather_for_display(current: Dict[str, Any]) -> WeatherDisplay:
    main = current.get("main") or {}
    wind = current.get("wind") or {}
    weather = (current.get("weather") or [{}])[0]

    temp = _round(main.get("temp"))

    description = " ".join(
        word[:1].upper() + word[1:]
        for word in (weather.get("description") or "").split(" ")
    )

    return WeatherDisplay(
        temp=temp,
        feels_like=_round(main.get("feels_like"), temp),
        description=description,
        humidity=main.get("humidity"),
        visibility_mi=_round((current.get("visibility") or DEFAULT_VISIBILITY_M) / METERS_PER_MILE),
        wind_speed_kmh=_round((wind.get("speed") or 0) * MS_TO_KMH),
        wind_deg=wind.get("deg") or 0,
        icon_key=icon_key(weather.get("main")),
        city_name=current.get("name"),
    )


def get_background(current: Dict[str, Any]) -> str:
    """Background scene name for the weather screen."""
    sys_info = current.get("sys") or {}
    dt = current.get("dt")
    sunrise, sunset = sys_info.get("sunrise"), sys_info.get("sunset")
    is_night = (
        dt is not None and sunrise is not None and sunset is not None
        and (dt < sunrise or dt > sunset)
    )
    condition = current_condition(current)
    wet = is_raining(current)

    if is_night:
        if wet:
            return "rainy_night"
        if "cloud" in condition:
            return "cloudy_night"
        return "clear_night"

    if "thunderstorm" in condition:
        return "thunderstorm"
    if "rain" in condition or "drizzle" in condition:
        return "rainy_day"
    if "snow" in condition:
        return "snowy_day"
    if "cloud" in condition:
        return "cloudy_day"
    return "sunny_day"


def rain_likelihood(current: Optional[Dict[str, Any]], forecast: Optional[Dict[str, Any]]) -> RainLikelihood:
    """Raining now, plus the next forecast slot's probability of precipitation."""
    if not current:
        return RainLikelihood(is_raining=False, rain_pct=None, rain_label=None)

    raining = is_raining(current)

    items = (forecast or {}).get("list") or []
    pop = items[0].get("pop") if items else None
    if pop is None:
        return RainLikelihood(is_raining=raining, rain_pct=None, rain_label=None)

    pct = _round(pop * 100)
    label = "Likely to Rain" if pct >= RAIN_LIKELY_PCT else "Unlikely to Rain"
    return RainLikelihood(is_raining=raining, rain_pct=pct, rain_label=label)


def uv_label(uv_index: Optional[float]) -> Optional[str]:
    if uv_index is None:
        return None
    for upper, label in UV_BANDS:
        if uv_index <= upper:
            return label
    return UV_TOP_LABEL


def air_quality_summary(air_quality: Optional[Dict[str, Any]], uv_index: Optional[float]) -> AirQualitySummary:
    """AQI label from the 1-5 OpenWeather index, plus the UV band."""
    entries = (air_quality or {}).get("list") or [{}]
    aqi = (entries[0].get("main") or {}).get("aqi")
    label = AQI_LABELS[aqi - 1] if aqi and 1 <= aqi <= len(AQI_LABELS) else None
    return AirQualitySummary(aqi_index=aqi, aqi_label=label, uv_label=uv_label(uv_index))
