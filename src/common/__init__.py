"""
Passenger Monitor - shared helpers.
"""

from .exceptions import (
    MonitorError,
    DetectionError,
    EnvironmentLookupError,
    LocationError,
    WeatherError,
    StoreError,
    ConfigurationError,
)

__all__ = [
    "MonitorError",
    "DetectionError",
    "EnvironmentLookupError",
    "LocationError",
    "WeatherError",
    "StoreError",
    "ConfigurationError",
]
