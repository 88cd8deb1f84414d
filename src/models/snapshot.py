"""
Snapshot model for the periodic aggregate record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .environment import EnvironmentReading


@dataclass(frozen=True)
class Snapshot:
    """
    One aggregate record produced per scheduler tick.

    Attributes:
        timestamp: Unix timestamp (seconds, float) when the tick fired.
        passenger_count: People detected in the most recent analyzed frame.
        condition: Weather condition text at tick time.
        temperature: Outdoor temperature text at tick time.
    """
    timestamp: float
    passenger_count: int
    condition: str
    temperature: str

    def __post_init__(self):
        if self.passenger_count < 0:
            raise ValueError("passenger_count must be non-negative")

    @classmethod
    def capture(cls, timestamp: float, passenger_count: int, reading: EnvironmentReading) -> "Snapshot":
        """Build a snapshot from the pipeline count and an environment reading."""
        return cls(
            timestamp=float(timestamp),
            passenger_count=int(passenger_count),
            condition=reading.condition,
            temperature=reading.temperature,
        )

    def to_record(self) -> Dict[str, Any]:
        """Convert to the persisted record shape."""
        return {
            "timestamp": self.timestamp,
            "passenger_count": self.passenger_count,
            "condition": self.condition,
            "temperature": self.temperature,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Snapshot":
        """Adapter: rebuild a Snapshot from a persisted record."""
        return cls(
            timestamp=float(record["timestamp"]),
            passenger_count=int(record["passenger_count"]),
            condition=str(record["condition"]),
            temperature=str(record["temperature"]),
        )
