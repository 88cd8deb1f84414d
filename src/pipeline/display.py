"""
Display consumers: the status caption and the annotated preview.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

import cv2

from models.frame import FrameData
from models.snapshot import Snapshot
from .inbox import LatestSlot
from .overlay import FrameOverlaySurface

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_status_lines(snapshot: Snapshot) -> List[str]:
    """Status caption shown over the preview."""
    return [
        f"Date: {datetime.fromtimestamp(snapshot.timestamp).strftime(DATE_FORMAT)}",
        f"Condition: {snapshot.condition}",
        f"Temperature: {snapshot.temperature}",
        f"People: {snapshot.passenger_count}",
    ]


class StatusDisplay:
    """Tick consumer that refreshes the caption drawn on the preview."""

    def __init__(self, surface: FrameOverlaySurface):
        self.surface = surface

    def update(self, snapshot: Snapshot) -> None:
        self.surface.set_caption(format_status_lines(snapshot))


class PreviewRenderer:
    """
    Composites the overlay onto the most recent camera frame.

    submit_frame() is called from the capture thread; render() runs on the
    control loop at the preview rate and publishes the annotated frame.
    """

    def __init__(
        self,
        surface: FrameOverlaySurface,
        publish: Optional[Callable] = None,
        window_name: Optional[str] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ):
        self.surface = surface
        self._publish = publish
        self.window_name = window_name
        self._on_quit = on_quit
        self._slot: LatestSlot[FrameData] = LatestSlot()
        self._last: Optional[FrameData] = None
        self.rendered = 0

    def submit_frame(self, frame_data: FrameData) -> None:
        self._slot.put(frame_data)

    def render(self) -> None:
        latest = self._slot.take(timeout=0)
        if latest is not None:
            self._last = latest
        if self._last is None:
            return

        annotated = self.surface.render(self._last.frame)
        self.rendered += 1

        if self._publish is not None:
            self._publish(annotated, self._last.timestamp)

        if self.window_name:
            cv2.imshow(self.window_name, annotated)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                logging.info("Preview window closed by user")
                if self._on_quit is not None:
                    self._on_quit()

    def close(self) -> None:
        if self.window_name:
            cv2.destroyAllWindows()
