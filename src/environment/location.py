"""
Location providers.

A provider answers a single request for the device's current coordinates.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol
from urllib import error, request

from common.exceptions import LocationError
from models.environment import Coordinates


class LocationProvider(Protocol):
    def request_once(self) -> Coordinates:
        """Return one location fix. Raises LocationError on failure."""
        ...


class StaticLocationProvider:
    """Fixed coordinates from configuration."""

    def __init__(self, latitude: float, longitude: float):
        try:
            self.coordinates = Coordinates(float(latitude), float(longitude))
        except (TypeError, ValueError) as e:
            raise LocationError(f"Invalid static coordinates ({latitude}, {longitude}): {e}") from e

    def request_once(self) -> Coordinates:
        return self.coordinates


class IpLocationProvider:
    """
    Approximate location from an ip-api style geolocation endpoint.

    The endpoint returns JSON with "lat" and "lon" fields, and optionally
    "status" set to "fail" with a "message".
    """

    def __init__(self, url: str = "http://ip-api.com/json/", timeout_s: float = 10.0):
        self.url = url
        self.timeout_s = timeout_s

    def request_once(self) -> Coordinates:
        req = request.Request(self.url, headers={"Accept": "application/json"})
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                body = response.read().decode("utf-8")
            payload = json.loads(body)
        except (error.URLError, OSError, ValueError) as e:
            raise LocationError(f"IP geolocation request failed: {e}") from e

        if payload.get("status") == "fail":
            raise LocationError(f"IP geolocation refused: {payload.get('message', 'unknown reason')}")

        try:
            coords = Coordinates(float(payload["lat"]), float(payload["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise LocationError(f"IP geolocation returned no usable coordinates: {e}") from e

        logging.info(f"Location fix: {coords.latitude:.4f}, {coords.longitude:.4f}")
        return coords
