#!/usr/bin/env python3
"""
PitchCheck — nearby football and cricket pitches with surface conditions.

Finds bookable pitches around a point, loads the local weather, and
estimates how wet and muddy each pitch is likely to be.

Requirements:
- Google Maps API key with the Places API (GOOGLE_MAPS_API_KEY)
- OpenWeather API key (OPENWEATHER_API_KEY)
- Open-Meteo needs no key

Usage:
    python pitchcheck.py --lat 51.52 --lng -0.04
    python pitchcheck.py --radius 5000 --sport cricket --open-only
    python pitchcheck.py --json
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from geo_math import GeoPoint, format_distance
from places_client import GooglePlacesClient
from scoring_config import CONDITION_MODEL
from session import PitchSession, VenueCard, WeatherView
from venue_catalog import (
    DEFAULT_RADIUS_M,
    SPORTS,
    directions_url,
    filter_by_sport,
    open_only,
    sorted_by_distance,
)
from weather_client import OpenWeatherClient

load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================================
# OUTPUT
# =============================================================================

def format_report(view: Optional[WeatherView], cards: List[VenueCard]) -> str:
    """Format the weather headline and venue list as a readable report"""
    lines = []

    lines.append("=" * 70)
    if view is None:
        lines.append("WEATHER: unavailable")
    else:
        d = view.display
        lines.append(f"WEATHER: {d.city_name or 'Unknown location'} — {d.temp}°C, {d.description}")
        lines.append(
            f"  feels like {d.feels_like}°C | humidity {d.humidity if d.humidity is not None else '–'}% | "
            f"wind {d.wind_speed_kmh} km/h | visibility {d.visibility_mi} mi"
        )
        if view.rain.rain_label:
            lines.append(f"  {view.rain.rain_label} ({view.rain.rain_pct}%)")
        if view.air.aqi_label or view.air.uv_label:
            lines.append(f"  air quality {view.air.aqi_label or '–'} | UV {view.air.uv_label or '–'}")
        lines.append(f"  rain over the past two days: {view.recent_rain_mm:.1f} mm")
        lines.append(
            "  " + "  ".join(
                f"[{e.hour_label} {e.icon_key} {e.temp_c}°]" if e.is_current
                else f"{e.hour_label} {e.icon_key} {e.temp_c}°"
                for e in view.timeline
            )
        )
    lines.append("=" * 70)

    if not cards:
        lines.append("\nNo pitches found nearby.")
        return "\n".join(lines)

    lines.append(f"\nPITCHES ({len(cards)}):")
    for card in cards:
        v = card.venue
        status = "open" if v.open_now else ("closed" if v.open_now is False else "hours unknown")
        if v.closing_soon and v.closes_at:
            status = f"closing soon ({v.closes_at})"
        dist = (
            f"{format_distance(card.distance_km)}, ~{card.walking_minutes} min walk"
            if card.distance_km is not None else "distance unknown"
        )
        lines.append(f"\n  {v.name} [{v.sport_type}]")
        lines.append(f"    {v.address or 'no address'} — {dist} — {status}")
        if card.condition:
            lines.append(
                f"    wetness {card.condition.wetness_pct}% ({card.wetness_label}) | "
                f"muddiness {card.condition.muddiness_pct}% ({card.muddiness_label})"
            )
        else:
            lines.append("    conditions unavailable")

    return "\n".join(lines)


def report_to_dict(session: PitchSession, view: Optional[WeatherView], cards: List[VenueCard]) -> dict:
    return {
        "location": {"lat": session.location.lat, "lng": session.location.lng},
        "weather": {
            "city_name": view.display.city_name,
            "temp_c": view.display.temp,
            "description": view.display.description,
            "humidity": view.display.humidity,
            "recent_rain_mm": view.recent_rain_mm,
            "rain_label": view.rain.rain_label,
            "aqi_label": view.air.aqi_label,
            "uv_label": view.air.uv_label,
            "background": view.background,
            "timeline": [
                {
                    "hour": e.hour_label,
                    "icon": e.icon_key,
                    "temp_c": e.temp_c,
                    "is_current": e.is_current,
                }
                for e in view.timeline
            ],
        } if view else None,
        "venues": [
            {
                "place_id": c.venue.place_id,
                "name": c.venue.name,
                "sport": c.venue.sport_type,
                "address": c.venue.address,
                "rating": c.venue.rating,
                "open_now": c.venue.open_now,
                "closing_soon": c.venue.closing_soon,
                "closes_at": c.venue.closes_at,
                "distance_km": round(c.distance_km, 2) if c.distance_km is not None else None,
                "walking_minutes": c.walking_minutes,
                "wetness_pct": c.condition.wetness_pct if c.condition else None,
                "wetness_label": c.wetness_label,
                "muddiness_pct": c.condition.muddiness_pct if c.condition else None,
                "muddiness_label": c.muddiness_label,
                "directions_url": directions_url(c.venue),
            }
            for c in cards
        ],
        "model_version": CONDITION_MODEL.version,
        "trace": session.trace.summary_dict(),
    }


# =============================================================================
# CLI
# =============================================================================

def main():
    parser = argparse.ArgumentParser(
        description="Find nearby football and cricket pitches and estimate how wet and muddy they are"
    )
    parser.add_argument("--lat", type=float, help="Latitude (defaults to the fallback location)")
    parser.add_argument("--lng", type=float, help="Longitude (defaults to the fallback location)")
    parser.add_argument(
        "--radius",
        type=int,
        default=DEFAULT_RADIUS_M,
        help="Search radius in metres (clamped to 100-10000)",
    )
    parser.add_argument(
        "--sport",
        choices=SPORTS,
        action="append",
        help="Only show this sport (repeatable)",
    )
    parser.add_argument("--open-only", action="store_true", help="Only show venues open now")
    parser.add_argument(
        "--no-conditions",
        action="store_true",
        help="Skip per-pitch weather lookups",
    )
    parser.add_argument(
        "--api-key",
        default=os.environ.get("GOOGLE_MAPS_API_KEY"),
        help="Google Maps API key (or set GOOGLE_MAPS_API_KEY env var)",
    )
    parser.add_argument(
        "--weather-key",
        default=os.environ.get("OPENWEATHER_API_KEY"),
        help="OpenWeather API key (or set OPENWEATHER_API_KEY env var)",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON instead of formatted text")

    args = parser.parse_args()

    logging.basicConfig(level=os.environ.get("PITCHCHECK_LOG_LEVEL", "INFO").upper())

    if not args.api_key:
        print("Error: Google Maps API key required. Set GOOGLE_MAPS_API_KEY or use --api-key")
        sys.exit(1)
    if not args.weather_key:
        print("Error: OpenWeather API key required. Set OPENWEATHER_API_KEY or use --weather-key")
        sys.exit(1)
    if (args.lat is None) != (args.lng is None):
        print("Error: --lat and --lng must be given together")
        sys.exit(1)

    locate = None
    if args.lat is not None:
        point = GeoPoint(args.lat, args.lng)
        locate = lambda: point  # noqa: E731

    with PitchSession(
        GooglePlacesClient(args.api_key),
        OpenWeatherClient(args.weather_key),
        locate=locate,
    ) as session:
        view = session.start(args.radius)

        venues = session.venues
        if args.sport:
            venues = filter_by_sport(venues, args.sport)
        if args.open_only:
            venues = open_only(venues)
        venues = sorted_by_distance(venues, session.location)

        cards = [session.venue_card(v, with_condition=not args.no_conditions) for v in venues]

        logger.info("Found %d venues around (%.4f, %.4f)", len(cards), session.location.lat, session.location.lng)

        if args.json:
            print(json.dumps(report_to_dict(session, view, cards), indent=2))
        else:
            print(format_report(view, cards))


if __name__ == "__main__":
    main()
