"""
Search coverage tracking for "search this area".

Every area search is remembered as a circle.  A viewport counts as covered
when a fixed set of sample points (its centre plus 8 points on its boundary)
each fall inside at least one remembered circle.  This is a sampling test,
not exact circle-union geometry: it may report an already-searched viewport
as uncovered (harmless re-search) but should never skip an unsearched one.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from geo_math import GeoPoint, distance_meters, offset_point

logger = logging.getLogger(__name__)

# Boundary samples at 45 degree steps.  Do not lower: fewer samples let
# gaps between circles slip through.
BOUNDARY_SAMPLES = 8


@dataclass(frozen=True)
class SearchCircle:
    """One issued area search."""
    center: GeoPoint
    radius_meters: float


@dataclass(frozen=True)
class Viewport:
    """The visible map area, approximated as a circle."""
    center: GeoPoint
    visible_radius_meters: Optional[float]


def sample_points(viewport: Viewport) -> List[GeoPoint]:
    """Centre of the viewport plus BOUNDARY_SAMPLES points on its edge."""
    points = [viewport.center]
    for i in range(BOUNDARY_SAMPLES):
        bearing = i * (2 * math.pi / BOUNDARY_SAMPLES)
        points.append(offset_point(viewport.center, viewport.visible_radius_meters, bearing))
    return points


class CoverageTracker:
    """Append-only record of searched circles for one session."""

    def __init__(self):
        self._circles: List[SearchCircle] = []

    @property
    def circles(self) -> List[SearchCircle]:
        return list(self._circles)

    def record_search(self, center: GeoPoint, radius_meters: float) -> SearchCircle:
        """Remember a search.

        Called when the search is issued, not when it completes, so an
        overlapping request made while the first is in flight is suppressed.
        """
        circle = SearchCircle(center=center, radius_meters=radius_meters)
        self._circles.append(circle)
        logger.debug(
            "Recorded search circle (%.5f, %.5f) r=%.0fm (%d total)",
            center.lat, center.lng, radius_meters, len(self._circles),
        )
        return circle

    def _point_covered(self, point: GeoPoint) -> bool:
        return any(
            distance_meters(point, c.center) <= c.radius_meters
            for c in self._circles
        )

    def is_covered(self, viewport: Optional[Viewport]) -> bool:
        """True only if every sample point of *viewport* is inside some circle."""
        if viewport is None or not self._circles:
            return False
        if viewport.visible_radius_meters is None:
            return False
        return all(self._point_covered(p) for p in sample_points(viewport))
