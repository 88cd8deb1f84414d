"""
Weather lookup against the Open-Meteo forecast API.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Protocol
from urllib import error, parse, request

from common.exceptions import WeatherError
from models.environment import Coordinates, EnvironmentReading

# WMO weather interpretation codes
WMO_CONDITIONS: Dict[int, str] = {
    0: "Clear",
    1: "Mainly Clear",
    2: "Partly Cloudy",
    3: "Cloudy",
    45: "Foggy",
    48: "Freezing Fog",
    51: "Light Drizzle",
    53: "Drizzle",
    55: "Heavy Drizzle",
    56: "Light Freezing Drizzle",
    57: "Freezing Drizzle",
    61: "Light Rain",
    63: "Rain",
    65: "Heavy Rain",
    66: "Light Freezing Rain",
    67: "Freezing Rain",
    71: "Light Snow",
    73: "Snow",
    75: "Heavy Snow",
    77: "Snow Grains",
    80: "Light Rain Showers",
    81: "Rain Showers",
    82: "Heavy Rain Showers",
    85: "Snow Showers",
    86: "Heavy Snow Showers",
    95: "Thunderstorms",
    96: "Thunderstorms with Hail",
    99: "Thunderstorms with Heavy Hail",
}

UNIT_SYMBOLS = {"celsius": "°C", "fahrenheit": "°F"}


class WeatherService(Protocol):
    def lookup(self, coords: Coordinates) -> EnvironmentReading:
        """Return current conditions at coords. Raises WeatherError on failure."""
        ...


def describe_weather_code(code: int) -> str:
    return WMO_CONDITIONS.get(code, f"Unknown ({code})")


def format_temperature(value: float, unit: str) -> str:
    """Round to whole degrees: 21.4, "°C" -> "21°C"."""
    return f"{round(value):d}{unit}"


class OpenMeteoWeatherService:
    """
    Current conditions from Open-Meteo (no API key required).

    Args:
        base_url: Forecast endpoint
        timeout_s: HTTP timeout in seconds
        temperature_unit: "celsius" or "fahrenheit"
    """

    def __init__(
        self,
        base_url: str = "https://api.open-meteo.com/v1/forecast",
        timeout_s: float = 10.0,
        temperature_unit: str = "celsius",
    ):
        if temperature_unit not in UNIT_SYMBOLS:
            raise ValueError(f"temperature_unit must be one of {sorted(UNIT_SYMBOLS)}")
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.temperature_unit = temperature_unit

    def build_url(self, coords: Coordinates) -> str:
        query = parse.urlencode({
            "latitude": f"{coords.latitude:.4f}",
            "longitude": f"{coords.longitude:.4f}",
            "current": "temperature_2m,weather_code",
            "temperature_unit": self.temperature_unit,
        })
        return f"{self.base_url}?{query}"

    def _fetch(self, url: str) -> Dict[str, Any]:
        req = request.Request(url, headers={"Accept": "application/json"})
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                body = response.read().decode("utf-8")
            return json.loads(body)
        except (error.URLError, OSError, ValueError) as e:
            raise WeatherError(f"Weather request failed: {e}") from e

    def lookup(self, coords: Coordinates) -> EnvironmentReading:
        payload = self._fetch(self.build_url(coords))

        current = payload.get("current") or {}
        try:
            temperature = float(current["temperature_2m"])
            code = int(current["weather_code"])
        except (KeyError, TypeError, ValueError) as e:
            raise WeatherError(f"Weather response missing current conditions: {e}") from e

        unit = (payload.get("current_units") or {}).get("temperature_2m") or UNIT_SYMBOLS[self.temperature_unit]
        reading = EnvironmentReading(
            condition=describe_weather_code(code),
            temperature=format_temperature(temperature, unit),
        )
        logging.info(f"Weather: {reading.condition}, {reading.temperature}")
        return reading
