"""
Overlay rendering: one rectangle per detected person.

OverlayRenderer owns the list of shapes it has attached to a surface and
is only called on the control loop. Every update detaches all previous
shapes before attaching new ones, so no shape outlives the frame that
produced it.
"""

from __future__ import annotations

import itertools
import threading
from typing import Dict, Hashable, List, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from models.detection import BoundingRegion

# Pixel rectangle (x1, y1, x2, y2)
Rect = Tuple[int, int, int, int]

# Colors (BGR)
COLOR_BOX = (0, 255, 0)  # Green
COLOR_CAPTION_TEXT = (0, 255, 0)
COLOR_CAPTION_BG = (255, 255, 255)


class OverlaySurface(Protocol):
    """Anything rectangles can be attached to and detached from."""

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        ...

    def add_shape(self, rect: Rect) -> Hashable:
        """Attach a rectangle; returns a handle for remove_shape()."""
        ...

    def remove_shape(self, handle: Hashable) -> None:
        ...


class OverlayRenderer:
    """
    Keeps exactly one shape per region of the latest detection result.

    Example:
        renderer = OverlayRenderer(surface)
        renderer.on_update(regions)   # shapes == len(regions)
        renderer.on_clear()           # shapes == 0
    """

    def __init__(self, surface: OverlaySurface):
        self.surface = surface
        self._shapes: List[Hashable] = []

    @property
    def shape_count(self) -> int:
        return len(self._shapes)

    def on_update(self, regions: Sequence[BoundingRegion]) -> None:
        self._detach_all()
        width, height = self.surface.size
        shapes = [self.surface.add_shape(region.to_pixels(width, height)) for region in regions]
        self._shapes = shapes

    def on_clear(self) -> None:
        self._detach_all()
        self._shapes = []

    def _detach_all(self) -> None:
        for handle in self._shapes:
            self.surface.remove_shape(handle)


class FrameOverlaySurface:
    """
    OpenCV-backed surface: attached rectangles and a caption drawn onto frames.

    Shapes are mutated on the control loop; render() may be called from the
    web thread too, so attachments are guarded by a lock.
    """

    def __init__(self, width: int, height: int, thickness: int = 2):
        self._size = (int(width), int(height))
        self.thickness = thickness
        self._shapes: Dict[int, Rect] = {}
        self._ids = itertools.count(1)
        self._caption: List[str] = []
        self._lock = threading.Lock()

    @property
    def size(self) -> Tuple[int, int]:
        return self._size

    @property
    def attached(self) -> List[Rect]:
        with self._lock:
            return list(self._shapes.values())

    def add_shape(self, rect: Rect) -> int:
        handle = next(self._ids)
        with self._lock:
            self._shapes[handle] = rect
        return handle

    def remove_shape(self, handle: Hashable) -> None:
        with self._lock:
            self._shapes.pop(handle, None)

    def set_caption(self, lines: Sequence[str]) -> None:
        with self._lock:
            self._caption = list(lines)

    @property
    def caption(self) -> List[str]:
        with self._lock:
            return list(self._caption)

    def render(self, frame: np.ndarray) -> np.ndarray:
        """Return a copy of frame with all attached shapes and the caption drawn."""
        annotated = frame.copy()
        frame_h, frame_w = annotated.shape[:2]
        sx = frame_w / float(self._size[0]) if self._size[0] else 1.0
        sy = frame_h / float(self._size[1]) if self._size[1] else 1.0

        with self._lock:
            shapes = list(self._shapes.values())
            caption = list(self._caption)

        for x1, y1, x2, y2 in shapes:
            cv2.rectangle(
                annotated,
                (int(x1 * sx), int(y1 * sy)),
                (int(x2 * sx), int(y2 * sy)),
                COLOR_BOX,
                self.thickness,
            )

        if caption:
            self._draw_caption(annotated, caption)
        return annotated

    def _draw_caption(self, frame: np.ndarray, lines: Sequence[str]) -> None:
        font = cv2.FONT_HERSHEY_SIMPLEX
        scale = 0.5
        line_h = 18
        text_w = max(cv2.getTextSize(line, font, scale, 1)[0][0] for line in lines)
        box_w = text_w + 16
        box_h = line_h * len(lines) + 10
        x0 = max(0, (frame.shape[1] - box_w) // 2)
        y0 = 40
        cv2.rectangle(frame, (x0, y0), (x0 + box_w, y0 + box_h), COLOR_CAPTION_BG, -1)
        for i, line in enumerate(lines):
            cv2.putText(frame, line, (x0 + 8, y0 + 18 + i * line_h), font, scale, COLOR_CAPTION_TEXT, 1)


def draw_regions(frame: np.ndarray, regions: Sequence[BoundingRegion], color: Optional[Tuple[int, int, int]] = None) -> np.ndarray:
    """Draw regions straight onto a copy of frame (used for one-off debug output)."""
    annotated = frame.copy()
    frame_h, frame_w = annotated.shape[:2]
    for region in regions:
        x1, y1, x2, y2 = region.to_pixels(frame_w, frame_h)
        cv2.rectangle(annotated, (x1, y1), (x2, y2), color or COLOR_BOX, 2)
    return annotated
