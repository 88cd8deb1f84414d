"""
OpenCV camera source.

Supports USB cameras (device_id as int), RTSP streams (rtsp:// URL) and
video files (path). Live devices keep a one-frame capture buffer so stale
frames are discarded by the driver rather than queued.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from .base import ObservationConfig, ObservationSource
from .rtsp_utils import inject_rtsp_credentials, sanitize_url

MAX_READ_FAILURES = 3


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    cv2.VideoCapture settings.

    Attributes:
        device_id: Camera index, RTSP URL or file path.
        rtsp_transport: "tcp" or "udp" for RTSP streams.
        buffer_size: Driver-side frame buffer (1 = always the latest frame).
        max_retries: Attempts to open the device before giving up.
        swap_rb: Swap red/blue channels.
        rotate: Rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Mirror left-right.
        flip_vertical: Mirror top-bottom.
    """
    device_id: Union[int, str] = 0
    rtsp_transport: str = "tcp"
    buffer_size: int = 1
    max_retries: int = 3
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: build from the 'camera' config section."""
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            rtsp_transport=camera_cfg.get("rtsp_transport", "tcp"),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
            swap_rb=camera_cfg.get("swap_rb", False),
            rotate=camera_cfg.get("rotate", 0) or 0,
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
            flip_vertical=camera_cfg.get("flip_vertical", False),
        )


def apply_transforms(frame: np.ndarray, cfg: OpenCVSourceConfig) -> np.ndarray:
    """Rotate, flip and channel-swap a raw frame into display orientation."""
    if cfg.rotate == 90:
        frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
    elif cfg.rotate == 180:
        frame = cv2.rotate(frame, cv2.ROTATE_180)
    elif cfg.rotate == 270:
        frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

    if cfg.flip_horizontal and cfg.flip_vertical:
        frame = cv2.flip(frame, -1)
    elif cfg.flip_horizontal:
        frame = cv2.flip(frame, 1)
    elif cfg.flip_vertical:
        frame = cv2.flip(frame, 0)

    if cfg.swap_rb:
        frame = frame[..., ::-1].copy()

    return frame


class OpenCVSource(ObservationSource):
    """cv2.VideoCapture wrapped as an ObservationSource."""

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._consecutive_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_rtsp(self) -> bool:
        return isinstance(self.device_id, str) and self.device_id.startswith(("rtsp://", "rtsps://"))

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and not self.is_rtsp and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        cfg = self._opencv_config
        for attempt in range(1, cfg.max_retries + 1):
            if self._connect():
                break
            if attempt < cfg.max_retries:
                wait_time = min(2 ** attempt, 10)
                logging.warning(
                    f"Failed to open {sanitize_url(self.device_id)} "
                    f"(attempt {attempt}/{cfg.max_retries}), retrying in {wait_time}s"
                )
                time.sleep(wait_time)
        else:
            raise RuntimeError(
                f"Failed to open device {sanitize_url(self.device_id)} after {cfg.max_retries} attempts"
            )

        self._is_open = True
        self._frame_index = 0
        self._consecutive_failures = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, resolution={cfg.resolution}"
        )

    def _connect(self) -> bool:
        """(Re)create the capture handle. Returns True if the device opened."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

        cfg = self._opencv_config
        if self.is_rtsp:
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = f"rtsp_transport;{cfg.rtsp_transport}"

        self._cap = cv2.VideoCapture(self.device_id)
        if not self._cap.isOpened():
            return False

        if not self.is_file:
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

        if isinstance(self.device_id, int) and cfg.resolution:
            w, h = cfg.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if cfg.fps:
                self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
            logging.info(
                f"Camera actual settings - Resolution: "
                f"({self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)}), "
                f"FPS: {self._cap.get(cv2.CAP_PROP_FPS)}"
            )

        return True

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            self._consecutive_failures += 1
            if self.is_file:
                logging.info("End of video file reached")
                return None
            if self._consecutive_failures > MAX_READ_FAILURES:
                logging.error("Too many consecutive read failures")
                return None

            logging.warning(f"Failed to read frame (failures: {self._consecutive_failures}), reconnecting...")
            if not self._connect():
                return None
            ret, frame = self._cap.read()
            if not ret or frame is None:
                return None

        self._consecutive_failures = 0
        return self._next_frame(apply_transforms(frame, self._opencv_config), time.time())

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False


def create_source_from_config(camera_cfg: Dict[str, Any], source_id: str = "camera") -> OpenCVSource:
    """Build the camera source from the 'camera' config section."""
    camera_cfg = dict(camera_cfg)
    inject_rtsp_credentials(camera_cfg)
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id))
