"""
Ambient environment models.
"""

from __future__ import annotations

from dataclasses import dataclass

PENDING_TEXT = "pending"


@dataclass(frozen=True)
class Coordinates:
    """A location fix in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class EnvironmentReading:
    """
    Latest known outdoor conditions.

    Attributes:
        condition: Human-readable weather condition (e.g., "Clear").
        temperature: Human-readable temperature (e.g., "21°C").
    """
    condition: str
    temperature: str

    @property
    def is_pending(self) -> bool:
        return self == PENDING_READING

    def to_dict(self) -> dict:
        return {"condition": self.condition, "temperature": self.temperature}


# Shown until the first successful refresh.
PENDING_READING = EnvironmentReading(condition=PENDING_TEXT, temperature=PENDING_TEXT)
