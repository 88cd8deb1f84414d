"""
Detection interfaces.

The detection model is an opaque capability: a frame goes in, an ordered
list of normalized person regions comes out. Backends:
- OpenCV HOG pedestrian detector (default, no model file needed)
- YOLO via Ultralytics (person class only)
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

import numpy as np

from models.detection import BoundingRegion


@runtime_checkable
class Detector(Protocol):
    """
    Detector interface returning people as normalized regions.

    Implementations raise common.exceptions.DetectionError when a frame
    cannot be analyzed. They must not keep mutable state between calls
    that would make one call depend on another.
    """

    def detect(self, frame: np.ndarray) -> List[BoundingRegion]:
        ...


def validate_frame(frame: np.ndarray) -> None:
    """Raise ValueError unless frame looks like an HxW or HxWxC image."""
    if frame is None:
        raise ValueError("frame is None")
    if not isinstance(frame, np.ndarray):
        raise ValueError(f"frame must be a numpy array, got {type(frame).__name__}")
    if frame.ndim not in (2, 3) or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise ValueError(f"unsupported frame shape {frame.shape}")
