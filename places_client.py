"""
Google Places web-service client used for venue discovery and enrichment.

Requires GOOGLE_MAPS_API_KEY (Places API enabled).  Nearby Search caps each
call at 20 results, which is why venue_catalog runs several keyword
variants per sport and merges them.
"""

import logging
import threading
import time
from typing import Dict, List, Optional

import requests

from pc_trace import get_trace

logger = logging.getLogger(__name__)


class GooglePlacesClient:
    """Client for the Google Places Nearby Search and Details endpoints."""

    # Per-call timeout in seconds.  Places p99 is well under 2 s.
    DEFAULT_TIMEOUT = 10

    DEFAULT_DETAIL_FIELDS = [
        "website",
        "formatted_phone_number",
        "opening_hours",
        "url",
        "photos",
    ]

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.base_url = "https://maps.googleapis.com/maps/api"
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """One requests.Session per thread (Session is not thread-safe)."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.trust_env = False
            self._local.session = session
        return session

    def _traced_get(self, endpoint_name: str, url: str, params: dict) -> dict:
        """GET request with automatic trace recording."""
        t0 = time.time()
        response = self.session.get(url, params=params, timeout=self.DEFAULT_TIMEOUT)
        elapsed_ms = int((time.time() - t0) * 1000)
        data = response.json()
        provider_status = data.get("status", "") if isinstance(data, dict) else ""
        trace = get_trace()
        if trace:
            trace.record_api_call(
                service="google_places",
                endpoint=endpoint_name,
                elapsed_ms=elapsed_ms,
                status_code=response.status_code,
                provider_status=provider_status,
            )
        return data

    def places_nearby(
        self,
        lat: float,
        lng: float,
        radius_meters: int = 3000,
        keyword: Optional[str] = None,
        place_type: Optional[str] = None,
    ) -> List[Dict]:
        """Search for places near a location"""
        url = f"{self.base_url}/place/nearbysearch/json"
        params = {
            "location": f"{lat},{lng}",
            "radius": radius_meters,
            "key": self.api_key,
        }
        if keyword:
            params["keyword"] = keyword
        if place_type:
            params["type"] = place_type

        data = self._traced_get("places_nearby", url, params)

        if data["status"] not in ["OK", "ZERO_RESULTS"]:
            logger.warning("Nearby search returned %s for keyword=%r", data["status"], keyword)
            raise ValueError(f"Places API failed: {data['status']}")

        return data.get("results", [])

    def place_details(self, place_id: str, fields: Optional[List[str]] = None) -> Dict:
        """Get detailed information about a place"""
        url = f"{self.base_url}/place/details/json"
        params = {
            "place_id": place_id,
            "fields": ",".join(fields or self.DEFAULT_DETAIL_FIELDS),
            "key": self.api_key,
        }
        data = self._traced_get("place_details", url, params)

        if data["status"] != "OK":
            logger.warning("Place details returned %s for %s", data["status"], place_id)
            raise ValueError(f"Place Details API failed: {data['status']}")

        return data.get("result", {})

    def photo_url(self, photo_reference: str, max_width: int = 400) -> str:
        """Build a Place Photo URL.  No request is made until it is loaded."""
        return (
            f"{self.base_url}/place/photo"
            f"?maxwidth={max_width}&photo_reference={photo_reference}&key={self.api_key}"
        )
