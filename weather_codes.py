"""
Weather condition taxonomy shared by the condition model, the hourly strip,
and the display helpers.

Two sources feed it: OpenWeather reports a condition ``main`` string
("Rain", "Clouds", ...) and Open-Meteo reports WMO weather codes.  Both are
normalised to the lower-case OpenWeather vocabulary.
"""

from typing import Optional

CLEAR = "clear"
CLOUDS = "clouds"
RAIN = "rain"
DRIZZLE = "drizzle"
SNOW = "snow"
THUNDERSTORM = "thunderstorm"

_WMO_CLOUDS = {1, 2, 3, 45, 48}
_WMO_RAIN = {51, 53, 55, 56, 57, 61, 63, 65, 66, 67, 80, 81, 82}
_WMO_SNOW = {71, 73, 75, 77, 85, 86}
_WMO_THUNDERSTORM = {95, 96, 99}

# Conditions that count as "raining now" when read from OpenWeather.
RAINING_CONDITIONS = (RAIN, DRIZZLE, THUNDERSTORM)

# Hourly WMO-derived conditions that count as a rain hour.  Drizzle codes
# already fold into RAIN via wmo_to_condition().
RAIN_HOUR_CONDITIONS = {RAIN, THUNDERSTORM}

ICON_KEYS = {
    CLEAR: "sunny",
    CLOUDS: "cloudy",
    RAIN: "raining",
    DRIZZLE: "raining",
    SNOW: "snowing",
    THUNDERSTORM: "hail",
}
DEFAULT_ICON_KEY = "sunny_cloudy"

ICON_PATHS = {
    "sunny": "/weather_icons/Sunny.svg",
    "cloudy": "/weather_icons/Cloudy.svg",
    "raining": "/weather_icons/Raining.svg",
    "snowing": "/weather_icons/Snowing.svg",
    "hail": "/weather_icons/Hail.svg",
    "sunny_cloudy": "/weather_icons/SunnyCloudy.svg",
}


def wmo_to_condition(code: Optional[int]) -> str:
    """Map an Open-Meteo WMO weather code to a condition string.

    Unknown or missing codes map to clouds.
    """
    if code == 0:
        return CLEAR
    if code in _WMO_CLOUDS:
        return CLOUDS
    if code in _WMO_RAIN:
        return RAIN
    if code in _WMO_SNOW:
        return SNOW
    if code in _WMO_THUNDERSTORM:
        return THUNDERSTORM
    return CLOUDS


def icon_key(condition: Optional[str]) -> str:
    return ICON_KEYS.get((condition or "").lower(), DEFAULT_ICON_KEY)


def icon_path(key: str) -> str:
    return ICON_PATHS.get(key, ICON_PATHS[DEFAULT_ICON_KEY])


def current_condition(current: Optional[dict]) -> str:
    """Lower-case condition ``main`` of an OpenWeather current response."""
    weather = (current or {}).get("weather") or [{}]
    return (weather[0].get("main") or "").lower()


def is_raining(current: Optional[dict]) -> bool:
    condition = current_condition(current)
    return any(c in condition for c in RAINING_CONDITIONS)
