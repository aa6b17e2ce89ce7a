"""
User location with a bounded wait and a fixed fallback.

The host supplies a ``locate`` callable (device GPS, IP lookup, CLI flags).
Whatever it does, the session gets a point within LOCATE_TIMEOUT seconds:
denial, errors, and slow providers all resolve to FALLBACK_LOCATION.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Optional

from geo_math import GeoPoint

logger = logging.getLogger(__name__)

# Mile End, London
FALLBACK_LOCATION = GeoPoint(51.52, -0.04)

LOCATE_TIMEOUT = 10  # seconds


def get_user_location(
    locate: Optional[Callable[[], Optional[GeoPoint]]] = None,
    timeout: float = LOCATE_TIMEOUT,
) -> GeoPoint:
    """Resolve the user's location, never raising."""
    if locate is None:
        return FALLBACK_LOCATION

    pool = ThreadPoolExecutor(max_workers=1)
    try:
        point = pool.submit(locate).result(timeout=timeout)
    except FutureTimeout:
        logger.warning("Location lookup timed out after %.0fs; using fallback", timeout)
        return FALLBACK_LOCATION
    except Exception:
        logger.warning("Location lookup failed; using fallback", exc_info=True)
        return FALLBACK_LOCATION
    finally:
        # a stuck provider keeps its thread; nobody waits for it
        pool.shutdown(wait=False)

    if point is None:
        logger.info("Location unavailable (denied); using fallback")
        return FALLBACK_LOCATION
    return point
