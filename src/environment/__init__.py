"""
Passenger Monitor - Environment Module

Location fix and weather lookup feeding the ambient reading attached to
every snapshot.
"""

from __future__ import annotations

from models.config import EnvironmentConfig
from .context import EnvironmentContext
from .location import IpLocationProvider, LocationProvider, StaticLocationProvider
from .weather import OpenMeteoWeatherService, WeatherService, describe_weather_code, format_temperature


def create_location_provider(cfg: EnvironmentConfig) -> LocationProvider:
    """Build the configured location provider ("static" or "ip")."""
    if cfg.provider == "static":
        return StaticLocationProvider(cfg.latitude, cfg.longitude)
    if cfg.provider == "ip":
        return IpLocationProvider(cfg.ip_url, timeout_s=cfg.timeout_s)
    raise ValueError(f"Unknown environment provider: {cfg.provider}")


def create_environment(cfg: EnvironmentConfig) -> EnvironmentContext:
    weather = OpenMeteoWeatherService(
        base_url=cfg.weather_url,
        timeout_s=cfg.timeout_s,
        temperature_unit=cfg.temperature_unit,
    )
    return EnvironmentContext(create_location_provider(cfg), weather)


__all__ = [
    "EnvironmentContext",
    "LocationProvider",
    "StaticLocationProvider",
    "IpLocationProvider",
    "WeatherService",
    "OpenMeteoWeatherService",
    "describe_weather_code",
    "format_temperature",
    "create_location_provider",
    "create_environment",
]
