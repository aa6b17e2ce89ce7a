"""
Pitch surface condition model — wetness and muddiness from weather.

Deterministic scoring from three signals: whether it is raining now (plus
humidity), how much rain fell over the two past days, and the hourly
history for the last ~48 h.  Weights and bands live in
scoring_config.CONDITION_MODEL.

Limitations:
  - No drainage, grass type, or shade information; two pitches in the same
    weather cell always score the same.
  - Rain hours are counted from WMO codes, not measured precipitation, so a
    light drizzle hour counts the same as a downpour.
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Sequence

from scoring_config import CONDITION_MODEL, clamp01, round_half_up
from weather_client import HourlySample
from weather_codes import RAIN_HOUR_CONDITIONS, is_raining, wmo_to_condition

logger = logging.getLogger(__name__)

WETNESS = "wetness"
MUDDINESS = "muddiness"


@dataclass(frozen=True)
class ConditionScore:
    wetness_pct: int
    muddiness_pct: int


# =============================================================================
# DERIVED SIGNALS
# =============================================================================

def _is_rain_hour(sample: HourlySample) -> bool:
    return wmo_to_condition(sample.weather_code) in RAIN_HOUR_CONDITIONS


def count_rain_hours(past_hourly: Sequence[HourlySample]) -> int:
    return sum(1 for h in past_hourly if _is_rain_hour(h))


def hours_since_last_rain(past_hourly: Sequence[HourlySample], now: Optional[datetime] = None) -> float:
    """Hours since the latest rain hour; math.inf if none.

    Rain hours later than *now* (the tail of today's forecast) count as 0.
    """
    now = now or datetime.now()
    for sample in reversed(past_hourly):
        if sample.time is None or not _is_rain_hour(sample):
            continue
        return max(0.0, (now - sample.time).total_seconds() / 3600)
    return math.inf


def mean_temp(past_hourly: Sequence[HourlySample]) -> float:
    default = CONDITION_MODEL.default_temp_c
    if not past_hourly:
        return default
    temps = [h.temp_c if h.temp_c is not None else default for h in past_hourly]
    return sum(temps) / len(temps)


# =============================================================================
# SCORES
# =============================================================================

def _humidity_factor(humidity: float) -> float:
    base = CONDITION_MODEL.humidity_baseline_pct
    return clamp01((humidity - base) / (100 - base))


def _to_pct(raw: float) -> int:
    return max(0, min(100, round_half_up(raw)))


def calc_pitch_condition(
    current: Optional[dict],
    recent_rain_mm: Optional[float] = 0.0,
    past_hourly: Sequence[HourlySample] = (),
    now: Optional[datetime] = None,
) -> ConditionScore:
    """Score wetness and muddiness, each 0-100.

    current is an OpenWeather current-weather response; a missing humidity
    reads as 50%.  recent_rain_mm is the two-day precipitation sum.
    """
    w = CONDITION_MODEL.wetness
    m = CONDITION_MODEL.muddiness

    humidity = ((current or {}).get("main") or {}).get("humidity")
    if humidity is None:
        humidity = CONDITION_MODEL.default_humidity_pct
    rain_mm = recent_rain_mm or 0.0
    past_hourly = list(past_hourly or ())

    raining = is_raining(current)
    rain_hours = count_rain_hours(past_hourly)
    dry_since = hours_since_last_rain(past_hourly, now)
    avg = mean_temp(past_hourly)
    total_hours = len(past_hourly) or CONDITION_MODEL.default_total_hours
    humidity_excess = _humidity_factor(humidity)

    # Wetness
    drying = 0.0 if math.isinf(dry_since) else clamp01(1 - dry_since / w.drying_window_hours)
    wetness = (
        (1.0 if raining else 0.0) * w.current_rain
        + clamp01(rain_mm / w.recent_rain_full_mm) * w.recent_rain
        + humidity_excess * w.humidity
        + drying * w.drying
    )

    # Muddiness
    muddiness = (
        clamp01(rain_mm / m.rainfall_full_mm) * m.rainfall
        + clamp01(rain_hours / total_hours) * m.sustained_rain
        + clamp01((m.cold_reference_c - avg) / m.cold_reference_c) * m.cold
        + humidity_excess * m.humidity
    )

    logger.debug(
        "Condition inputs: raining=%s rain_mm=%.1f humidity=%s rain_hours=%d/%d dry_since=%.1fh mean_temp=%.1f",
        raining, rain_mm, humidity, rain_hours, total_hours, dry_since, avg,
    )
    return ConditionScore(wetness_pct=_to_pct(wetness), muddiness_pct=_to_pct(muddiness))


# =============================================================================
# LABELS
# =============================================================================

def condition_label(pct: int, kind: str) -> str:
    """Five-step label for a wetness or muddiness percentage."""
    if kind == WETNESS:
        bands, top = CONDITION_MODEL.wetness_labels, CONDITION_MODEL.top_wetness_label
    elif kind == MUDDINESS:
        bands, top = CONDITION_MODEL.muddiness_labels, CONDITION_MODEL.top_muddiness_label
    else:
        raise ValueError(f"Unknown condition kind: {kind!r}")

    for band in bands:
        if pct < band.upper:
            return band.label
    return top


def color_band(pct: int) -> str:
    """'good' / 'moderate' / 'poor' — independent of condition_label."""
    for band in CONDITION_MODEL.color_bands:
        if pct < band.upper:
            return band.band
    return CONDITION_MODEL.top_color_band


# =============================================================================
# PER-VENUE CACHE
# =============================================================================

class ConditionScoreCache:
    """Session-scoped place_id -> ConditionScore.  First computation wins."""

    def __init__(self):
        self._scores: Dict[str, ConditionScore] = {}
        self._lock = threading.Lock()

    def __contains__(self, place_id: str) -> bool:
        return place_id in self._scores

    def __len__(self) -> int:
        return len(self._scores)

    def get(self, place_id: str) -> Optional[ConditionScore]:
        return self._scores.get(place_id)

    def get_or_compute(
        self,
        place_id: str,
        compute: Callable[[], Optional[ConditionScore]],
    ) -> Optional[ConditionScore]:
        """Cached score, else compute() and keep the result if not None."""
        cached = self._scores.get(place_id)
        if cached is not None:
            return cached

        score = compute()
        if score is None:
            return None
        with self._lock:
            # a concurrent computation for the same place may have landed first
            return self._scores.setdefault(place_id, score)
