"""
Detection models: normalized bounding regions and the pipeline's detection state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True)
class BoundingRegion:
    """
    A detected subject as a rectangle in normalized image coordinates.

    Coordinates are relative to the frame size, top-left origin, all in [0, 1].
    Regions carry no identity: each frame's result replaces the previous one.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Rectangle width.
        height: Rectangle height.
        confidence: Detector score, if the detector reports one.
    """
    x: float
    y: float
    width: float
    height: float
    confidence: Optional[float] = None

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"BoundingRegion.{name} must be within [0, 1], got {value}")

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    @classmethod
    def from_pixels(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        frame_width: int,
        frame_height: int,
        confidence: Optional[float] = None,
    ) -> "BoundingRegion":
        """
        Create from a pixel-space (x1, y1, x2, y2) box.

        The box is clipped to the frame, so detectors that report boxes
        slightly outside the image still produce valid regions.
        """
        if frame_width <= 0 or frame_height <= 0:
            raise ValueError("frame dimensions must be positive")
        left = _clamp_unit(min(x1, x2) / frame_width)
        top = _clamp_unit(min(y1, y2) / frame_height)
        right = _clamp_unit(max(x1, x2) / frame_width)
        bottom = _clamp_unit(max(y1, y2) / frame_height)
        return cls(
            x=left,
            y=top,
            width=right - left,
            height=bottom - top,
            confidence=confidence,
        )

    def to_pixels(self, surface_width: int, surface_height: int) -> Tuple[int, int, int, int]:
        """Return (x1, y1, x2, y2) in pixel coordinates of a surface."""
        x1 = int(round(self.x * surface_width))
        y1 = int(round(self.y * surface_height))
        x2 = int(round((self.x + self.width) * surface_width))
        y2 = int(round((self.y + self.height) * surface_height))
        return (x1, y1, x2, y2)


@dataclass(frozen=True)
class DetectionState:
    """
    People count and regions from the most recent analyzed frame.

    Instances are immutable; the pipeline swaps in a new one per frame, so a
    reader always sees a consistent (count, regions) pair.
    """
    count: int = 0
    regions: Tuple[BoundingRegion, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.count < 0:
            raise ValueError("count must be non-negative")
        if self.regions and self.count != len(self.regions):
            raise ValueError(
                f"count ({self.count}) does not match number of regions ({len(self.regions)})"
            )

    @classmethod
    def from_regions(cls, regions: Iterable[BoundingRegion]) -> "DetectionState":
        regions = tuple(regions)
        return cls(count=len(regions), regions=regions)

    @classmethod
    def empty(cls) -> "DetectionState":
        return cls(count=0, regions=())

    @property
    def is_empty(self) -> bool:
        return self.count == 0
