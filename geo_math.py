"""
Geo helpers — great-circle distance, short-range point projection, and
walking-time estimates.

All coordinates are WGS84 degrees.  offset_point() uses a flat-earth
approximation that is fine at city scale (a few km) but drifts near the
poles and beyond ~50 km; callers only use it to sample points on a map
viewport boundary.
"""

import math
from dataclasses import dataclass


EARTH_RADIUS_M = 6371000
EARTH_RADIUS_KM = 6371

# Metres per degree of latitude (and of longitude at the equator).
METERS_PER_DEGREE = 111320

WALKING_SPEED_KMH = 5


@dataclass(frozen=True)
class GeoPoint:
    """An immutable lat/lng pair in degrees."""
    lat: float
    lng: float


def _haversine(a: GeoPoint, b: GeoPoint, radius: float) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return radius * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance between two points in metres."""
    return _haversine(a, b, EARTH_RADIUS_M)


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance between two points in kilometres."""
    return _haversine(a, b, EARTH_RADIUS_KM)


def offset_point(point: GeoPoint, distance_m: float, bearing: float) -> GeoPoint:
    """Project *point* by *distance_m* metres along *bearing* radians.

    Bearing 0 is north, pi/2 is east.  Longitude displacement is scaled by
    cos(latitude) of the origin point.
    """
    return GeoPoint(
        lat=point.lat + (distance_m * math.cos(bearing)) / METERS_PER_DEGREE,
        lng=point.lng + (distance_m * math.sin(bearing))
        / (METERS_PER_DEGREE * math.cos(math.radians(point.lat))),
    )


def walking_minutes(distance_km_: float) -> int:
    """Estimated walking time at 5 km/h, rounded half-up to whole minutes."""
    return int(distance_km_ / WALKING_SPEED_KMH * 60 + 0.5)


def format_distance(km: float) -> str:
    """Short display string: metres below 1 km, one-decimal km above."""
    if km < 1:
        return f"{int(km * 1000 + 0.5)}m"
    return f"{km:.1f}km"
