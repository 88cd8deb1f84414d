"""
Detection pipeline: frames in, people count and overlay updates out.

Threading:
- deliver() runs on the capture thread and only touches the inbox.
- on_frame() runs the detector on the worker thread.
- _apply() runs on the control loop; it is the only place DetectionState
  is replaced and the overlay renderer is called.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from common.exceptions import DetectionError
from detection.base import Detector
from models.detection import BoundingRegion, DetectionState
from models.frame import FrameData
from runtime.loop import ControlLoop
from .inbox import LatestSlot

# Log a congestion message every N dropped frames.
DROP_LOG_EVERY = 100


class RegionSink(Protocol):
    """Consumer of per-frame detection results (e.g., OverlayRenderer)."""

    def on_update(self, regions: Sequence[BoundingRegion]) -> None:
        ...

    def on_clear(self) -> None:
        ...


@dataclass
class PipelineStats:
    """Runtime statistics for the detection pipeline."""
    frames_delivered: int = 0
    frames_processed: int = 0
    frames_dropped: int = 0
    detection_failures: int = 0
    last_detection_ms: float = 0.0
    last_frame_ts: Optional[float] = None


class DetectionPipeline:
    """
    Runs the detector off the control loop with most-recent-wins frame shedding.

    Example:
        pipeline = DetectionPipeline(detector, loop, renderer=overlay)
        pipeline.start()
        for frame_data in source:
            pipeline.deliver(frame_data)
    """

    def __init__(
        self,
        detector: Detector,
        loop: ControlLoop,
        renderer: Optional[RegionSink] = None,
        take_timeout: float = 0.5,
    ):
        self.detector = detector
        self.loop = loop
        self.renderer = renderer
        self.stats = PipelineStats()
        self._take_timeout = take_timeout
        self._inbox: LatestSlot[FrameData] = LatestSlot()
        self._state = DetectionState.empty()
        self._listeners: List[Callable[[DetectionState], None]] = []
        self._worker: Optional[threading.Thread] = None
        self._running = False

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def state(self) -> DetectionState:
        """Current detection state (immutable)."""
        return self._state

    @property
    def count(self) -> int:
        return self._state.count

    def current_count(self) -> int:
        """Callable form of count, for the snapshot scheduler."""
        return self._state.count

    def add_listener(self, callback: Callable[[DetectionState], None]) -> None:
        """
        Register a callback run on the control loop after every applied state.

        Args:
            callback: Function taking the new DetectionState.
        """
        self._listeners.append(callback)

    # -------------------------------------------------------------------------
    # Frame delivery (capture thread)
    # -------------------------------------------------------------------------

    def deliver(self, frame_data: FrameData) -> None:
        """Hand a frame to the worker, replacing any frame still waiting."""
        self.stats.frames_delivered += 1
        if self._inbox.put(frame_data):
            self.stats.frames_dropped = self._inbox.dropped
            if self._inbox.dropped % DROP_LOG_EVERY == 0:
                logging.info(
                    f"Detection is slower than capture, dropped {self._inbox.dropped} frames so far"
                )

    # -------------------------------------------------------------------------
    # Detection (worker thread)
    # -------------------------------------------------------------------------

    def on_frame(self, frame_data: FrameData) -> List[BoundingRegion]:
        """
        Run the detector on one frame and hand the result to the control loop.

        A detector failure counts as "nobody detected" for this frame only.

        Returns:
            The regions that will be applied (empty on failure).
        """
        started = time.perf_counter()
        try:
            regions = list(self.detector.detect(frame_data.frame))
        except DetectionError as e:
            self.stats.detection_failures += 1
            logging.warning(f"Detection failed on frame {frame_data.frame_index}: {e}")
            regions = []
        except Exception as e:
            self.stats.detection_failures += 1
            logging.error(f"Unexpected detector error on frame {frame_data.frame_index}: {e}")
            regions = []

        self.stats.frames_processed += 1
        self.stats.last_detection_ms = (time.perf_counter() - started) * 1000.0
        self.stats.last_frame_ts = frame_data.timestamp

        self.loop.call_soon_threadsafe(self._apply, tuple(regions))
        return regions

    def _run_worker(self) -> None:
        while self._running:
            frame_data = self._inbox.take(timeout=self._take_timeout)
            if frame_data is None:
                continue
            self.on_frame(frame_data)

    def start(self) -> None:
        """
        Start the detection worker thread.

        Raises:
            RuntimeError: If a worker from an earlier stop() is still inside detect().
        """
        if self._worker is not None and self._worker.is_alive():
            if self._running:
                return
            raise RuntimeError("Previous detection worker is still finishing a frame")
        self._running = True
        self._inbox.reopen()
        self._worker = threading.Thread(target=self._run_worker, name="DetectionWorker", daemon=True)
        self._worker.start()
        logging.info(f"Detection pipeline started: detector={type(self.detector).__name__}")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the worker thread. Safe to call more than once."""
        self._running = False
        self._inbox.close()
        if self._worker is None:
            return
        self._worker.join(timeout=timeout)
        if self._worker.is_alive():
            logging.warning("Detection worker still busy after stop, it exits after the current frame")
            return
        self._worker = None
        logging.info(
            f"Detection pipeline stopped: processed={self.stats.frames_processed}, "
            f"dropped={self.stats.frames_dropped}, failures={self.stats.detection_failures}"
        )

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # -------------------------------------------------------------------------
    # State hand-off (control loop)
    # -------------------------------------------------------------------------

    def _apply(self, regions: Sequence[BoundingRegion]) -> None:
        if regions:
            self._state = DetectionState.from_regions(regions)
            if self.renderer is not None:
                self.renderer.on_update(self._state.regions)
        else:
            self._state = DetectionState.empty()
            if self.renderer is not None:
                self.renderer.on_clear()

        for callback in self._listeners:
            try:
                callback(self._state)
            except Exception as e:
                logging.warning(f"Detection listener error: {e}")
