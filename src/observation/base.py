"""
FrameSource interface.

A source delivers raw camera frames at capture rate. The capture thread calls
read() in a loop and hands every frame to the detection pipeline, which
drops any frame it cannot keep up with.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings shared by every frame source.

    Attributes:
        source_id: Identifier stamped on each FrameData (e.g., "carriage-1").
        resolution: Requested (width, height); None keeps the device default.
        fps: Requested capture rate; None keeps the device default.
    """
    source_id: str = "camera"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    Base class for frame sources.

    Usage:
        with OpenCVSource(config) as source:
            for frame_data in source:
                pipeline.deliver(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the device.

        Raises:
            RuntimeError: If the source cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Return the next frame, or None when no frame is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def _next_frame(self, frame, timestamp: float) -> FrameData:
        self._frame_index += 1
        return FrameData(
            frame=frame,
            timestamp=timestamp,
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """Yield frames until the source runs dry."""
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
