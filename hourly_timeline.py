"""
Five-slot hourly weather strip: two past hours, now, two future hours.

Past slots come from the Open-Meteo hourly history and future slots from
the OpenWeather 3-hour forecast.  Rather than the adjacent hours, each side
prefers the nearest hours where the condition *changed*, so the strip shows
"rain stopped at 14:00" instead of three identical cloud icons.  When the
history or forecast is missing, fixed placeholder slots keep the strip at
five entries.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from weather_client import HourlySample
from weather_codes import CLEAR, CLOUDS, RAIN, SNOW, current_condition, icon_key, wmo_to_condition

SLOTS_PER_SIDE = 2

# Past hours closer to now than this belong to the "current" slot.
PAST_CUTOFF = timedelta(minutes=30)


@dataclass(frozen=True)
class TimelineEntry:
    hour_label: str     # "HH:00"
    icon_key: str
    temp_c: int
    is_current: bool = False


def _round_temp(value: Optional[float], default: int = 0) -> int:
    if value is None:
        return default
    return int(math.floor(value + 0.5))


def _hour_label(hour: int) -> str:
    return f"{hour % 24:02d}:00"


# =============================================================================
# PAST
# =============================================================================

def _pick_past(past_hourly: Sequence[HourlySample], condition: str, now: datetime) -> List[HourlySample]:
    cutoff = now - PAST_CUTOFF
    valid = [h for h in past_hourly if h.time is not None and h.time < cutoff]

    picked: List[HourlySample] = []
    last = condition
    for sample in reversed(valid):
        cond = wmo_to_condition(sample.weather_code)
        if cond != last:
            picked.append(sample)
            last = cond
        if len(picked) == SLOTS_PER_SIDE:
            break

    # Not enough changes: top up with the most recent hours
    for sample in reversed(valid):
        if len(picked) == SLOTS_PER_SIDE:
            break
        if all(p.time != sample.time for p in picked):
            picked.append(sample)

    return sorted(picked, key=lambda h: h.time)


def _past_entries(
    past_hourly: Optional[Sequence[HourlySample]],
    condition: str,
    current_temp: int,
    now: datetime,
) -> List[TimelineEntry]:
    picked = _pick_past(past_hourly or (), condition, now)
    if len(picked) >= SLOTS_PER_SIDE:
        return [
            TimelineEntry(
                hour_label=_hour_label(h.time.hour),
                icon_key=icon_key(wmo_to_condition(h.weather_code)),
                temp_c=_round_temp(h.temp_c, current_temp),
            )
            for h in picked
        ]

    return [
        TimelineEntry(_hour_label(now.hour - 2), icon_key(CLEAR), current_temp + 2),
        TimelineEntry(_hour_label(now.hour - 1), icon_key(SNOW), current_temp - 1),
    ]


# =============================================================================
# FUTURE
# =============================================================================

def _forecast_condition(entry: dict) -> str:
    return ((entry.get("weather") or [{}])[0].get("main") or "").lower()


def _future_entries(forecast: Optional[dict], condition: str, current_temp: int, now: datetime) -> List[TimelineEntry]:
    # entries without a timestamp cannot be placed on the strip
    items = [f for f in (forecast or {}).get("list") or [] if f.get("dt") is not None]
    if len(items) < SLOTS_PER_SIDE:
        return [
            TimelineEntry(_hour_label(now.hour + 1), icon_key(RAIN), current_temp),
            TimelineEntry(_hour_label(now.hour + 2), icon_key(CLOUDS), current_temp + 1),
        ]

    picked: List[dict] = []
    last = condition
    for item in items:
        cond = _forecast_condition(item)
        if cond != last:
            picked.append(item)
            last = cond
        if len(picked) == SLOTS_PER_SIDE:
            break

    # Not enough changes: fill forward from the start of the forecast
    for item in items:
        if len(picked) == SLOTS_PER_SIDE:
            break
        if all(p.get("dt") != item.get("dt") for p in picked):
            picked.append(item)

    picked.sort(key=lambda f: f.get("dt", 0))
    return [
        TimelineEntry(
            hour_label=_hour_label(datetime.fromtimestamp(f["dt"]).hour),
            icon_key=icon_key(_forecast_condition(f)),
            temp_c=_round_temp((f.get("main") or {}).get("temp"), current_temp),
        )
        for f in picked
    ]


# =============================================================================
# PUBLIC API
# =============================================================================

def build_hourly_timeline(
    current: dict,
    forecast: Optional[dict] = None,
    past_hourly: Optional[Sequence[HourlySample]] = None,
    now: Optional[datetime] = None,
) -> List[TimelineEntry]:
    """Exactly five entries; the middle one is the current hour."""
    now = now or datetime.now()
    condition = current_condition(current)
    current_temp = _round_temp(((current or {}).get("main") or {}).get("temp"))

    entries = _past_entries(past_hourly, condition, current_temp, now)
    entries.append(
        TimelineEntry(
            hour_label=_hour_label(now.hour),
            icon_key=icon_key(condition),
            temp_c=current_temp,
            is_current=True,
        )
    )
    entries.extend(_future_entries(forecast, condition, current_temp, now))
    return entries
