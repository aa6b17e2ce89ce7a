"""Shared fixtures for the PitchCheck test suite.

Provides in-memory fakes for the Places and weather providers so session
and catalog tests never touch the network.
"""

import os
import threading
from datetime import datetime, timedelta

import pytest

# Clients read keys from the environment; make sure nothing real is used
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "fake-key-for-tests")
os.environ.setdefault("OPENWEATHER_API_KEY", "fake-key-for-tests")

from weather_client import HourlySample, PastWeather  # noqa: E402


def make_hit(place_id, lat=51.52, lng=-0.04, name=None, types=None, open_now=None):
    """A Nearby Search result dict."""
    hit = {
        "place_id": place_id,
        "name": name or f"Pitch {place_id}",
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "vicinity": f"{place_id} Road",
        "types": types or ["park", "point_of_interest"],
    }
    if open_now is not None:
        hit["opening_hours"] = {"open_now": open_now}
    return hit


def make_current(main="Clouds", humidity=60, temp=12.0, name="Mile End", description=None):
    """An OpenWeather current-weather response."""
    return {
        "name": name,
        "dt": 1700000000,
        "sys": {"sunrise": 1699990000, "sunset": 1700020000},
        "main": {"temp": temp, "feels_like": temp - 1, "humidity": humidity},
        "weather": [{"main": main, "description": description or main.lower()}],
        "wind": {"speed": 3.0, "deg": 200},
        "visibility": 10000,
    }


def make_forecast(entries):
    """An OpenWeather forecast response from (dt, main, temp, pop) tuples."""
    return {
        "list": [
            {"dt": dt, "weather": [{"main": main}], "main": {"temp": temp}, "pop": pop}
            for dt, main, temp, pop in entries
        ]
    }


def make_hourly(start, codes, temp=10.0):
    """HourlySample series, one per hour starting at *start*."""
    return [
        HourlySample(time=start + timedelta(hours=i), temp_c=temp, weather_code=code)
        for i, code in enumerate(codes)
    ]


class FakePlaces:
    """Stands in for GooglePlacesClient.

    ``results`` maps a keyword to the hits it returns; ``failing`` holds
    keywords (or place_ids for details) that raise.
    """

    def __init__(self, results=None, hours=None, failing=(), details=None):
        self.results = results or {}
        self.hours = hours or {}
        self.details = details or {}
        self.failing = set(failing)
        self.nearby_calls = []
        self.detail_calls = []
        self._lock = threading.Lock()

    def places_nearby(self, lat, lng, radius_meters=3000, keyword=None, place_type=None):
        with self._lock:
            self.nearby_calls.append((lat, lng, radius_meters, keyword))
        if keyword in self.failing:
            raise ValueError("Places API failed: OVER_QUERY_LIMIT")
        return list(self.results.get(keyword, []))

    def place_details(self, place_id, fields=None):
        with self._lock:
            self.detail_calls.append((place_id, tuple(fields or ())))
        if place_id in self.failing:
            raise ValueError("Place Details API failed: NOT_FOUND")
        if fields == ["opening_hours"]:
            return {"opening_hours": self.hours.get(place_id, {})}
        return self.details.get(place_id, {})

    def photo_url(self, photo_reference, max_width=400):
        return f"https://photos.test/{photo_reference}?w={max_width}"


class FakeWeather:
    """Stands in for OpenWeatherClient; names the place after the lat."""

    def __init__(self, current=None, forecast=None, fail=False):
        self.current = current
        self.forecast = forecast
        self.fail = fail
        self.calls = []
        self._lock = threading.Lock()

    def current_and_forecast(self, lat, lng):
        with self._lock:
            self.calls.append((lat, lng))
        if self.fail:
            raise ValueError("OpenWeather failed: weather=500 forecast=500")
        if self.current is not None:
            current = dict(self.current)
        else:
            current = make_current(name=f"Area {lat:.2f}")
        return {
            "current": current,
            "forecast": self.forecast or make_forecast([]),
            "air_quality": {"list": [{"main": {"aqi": 2}}]},
            "uv_index": 3.0,
        }


class FakePast:
    """Stands in for fetch_past_weather."""

    def __init__(self, total_rain_mm=0.0, past_hourly=None):
        self.total_rain_mm = total_rain_mm
        self.past_hourly = past_hourly or []
        self.calls = []

    def __call__(self, lat, lng):
        self.calls.append((lat, lng))
        return PastWeather(total_rain_mm=self.total_rain_mm, past_hourly=list(self.past_hourly))


@pytest.fixture()
def fake_places():
    return FakePlaces()


@pytest.fixture()
def fake_weather():
    return FakeWeather()


@pytest.fixture()
def fake_past():
    return FakePast()


@pytest.fixture()
def fixed_now():
    # A Wednesday afternoon
    return datetime(2024, 3, 13, 15, 0)
