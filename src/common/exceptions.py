"""
Exception taxonomy.

None of these are fatal once the application is running: each component
catches them at its own boundary and logs them.
"""


class MonitorError(Exception):
    """Base exception for all passenger monitor errors."""
    pass


class DetectionError(MonitorError):
    """Raised when the detector cannot analyze a frame."""
    pass


class EnvironmentLookupError(MonitorError):
    """Base for failures while refreshing the ambient reading."""
    pass


class LocationError(EnvironmentLookupError):
    """Raised when a location fix cannot be obtained."""
    pass


class WeatherError(EnvironmentLookupError):
    """Raised when the weather lookup fails or returns unusable data."""
    pass


class StoreError(MonitorError):
    """Raised when the durable store rejects or cannot perform a write/query."""
    pass


class ConfigurationError(MonitorError):
    """Raised when configuration is invalid."""
    pass
