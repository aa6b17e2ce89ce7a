"""
Opening-hours helpers for Google Places ``periods``.

Web-service periods look like::

    {"open": {"day": 1, "time": "0900"}, "close": {"day": 1, "time": "1730"}}

with day 0 = Sunday.  A single period with no ``close`` means open 24/7.
Entries carrying ``hours``/``minutes`` instead of ``time`` (the JS library
shape) are accepted too.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

CLOSING_SOON_MINUTES = 90

OPEN_24_HOURS = "Open 24hrs"


def _places_weekday(now: datetime) -> int:
    """Python weekday (Mon=0) -> Places day (Sun=0)."""
    return (now.weekday() + 1) % 7


def _hours_minutes(point: Optional[Dict]) -> Optional[Tuple[int, int]]:
    if not point:
        return None
    raw = point.get("time")
    if raw:
        raw = str(raw).zfill(4)
        return int(raw[:2]), int(raw[2:])
    if point.get("hours") is None:
        return None
    return int(point["hours"]), int(point.get("minutes") or 0)


def format_places_time(point: Optional[Dict]) -> Optional[str]:
    """Format a period endpoint as '9am' or '5:30pm'."""
    hm = _hours_minutes(point)
    if hm is None:
        return None
    h, m = hm
    suffix = "pm" if h >= 12 else "am"
    display_h = 12 if h == 0 else (h - 12 if h > 12 else h)
    if m == 0:
        return f"{display_h}{suffix}"
    return f"{display_h}:{m:02d}{suffix}"


def _is_always_open(periods: List[Dict]) -> bool:
    return len(periods) == 1 and not periods[0].get("close")


def _today_period(periods: List[Dict], now: datetime) -> Optional[Dict]:
    today = _places_weekday(now)
    for p in periods:
        if (p.get("open") or {}).get("day") == today:
            return p
    return None


def get_today_hours(periods: Optional[List[Dict]], now: Optional[datetime] = None) -> Optional[Dict[str, Optional[str]]]:
    """Today's {'opens_at', 'closes_at'} strings, or None when unknown."""
    if not periods:
        return None
    if _is_always_open(periods):
        return {"opens_at": OPEN_24_HOURS, "closes_at": None}

    period = _today_period(periods, now or datetime.now())
    if period is None:
        return None
    return {
        "opens_at": format_places_time(period.get("open")),
        "closes_at": format_places_time(period.get("close")),
    }


def _close_day_offset(period: Dict, now: datetime) -> int:
    """Days from today to the period's close (1 for a close past midnight)."""
    close_day = (period.get("close") or {}).get("day")
    if close_day is not None and close_day != _places_weekday(now):
        return (close_day - _places_weekday(now)) % 7
    open_hm = _hours_minutes(period.get("open"))
    close_hm = _hours_minutes(period.get("close"))
    if open_hm is not None and close_hm is not None and close_hm <= open_hm:
        return 1
    return 0


def is_closing_soon(periods: Optional[List[Dict]], now: Optional[datetime] = None) -> bool:
    """True when today's closing time is within the next 90 minutes."""
    if not periods or _is_always_open(periods):
        return False

    now = now or datetime.now()
    period = _today_period(periods, now)
    if period is None:
        return False
    close = period.get("close")
    hm = _hours_minutes(close)
    if hm is None:
        return False

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    close_at = midnight + timedelta(days=_close_day_offset(period, now), hours=hm[0], minutes=hm[1])
    diff_min = (close_at - now).total_seconds() / 60
    return 0 < diff_min <= CLOSING_SOON_MINUTES


def closing_time_str(periods: Optional[List[Dict]], now: Optional[datetime] = None) -> Optional[str]:
    hours = get_today_hours(periods, now)
    return hours["closes_at"] if hours else None
