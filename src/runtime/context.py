from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from environment.context import EnvironmentContext
from observation.base import ObservationSource
from pipeline.detection_pipeline import DetectionPipeline
from pipeline.display import PreviewRenderer, StatusDisplay
from pipeline.overlay import FrameOverlaySurface, OverlayRenderer
from pipeline.scheduler import SnapshotScheduler
from storage.base import PersistenceClient
from storage.persister import SnapshotPersister
from storage.sequence import SequenceAllocator
from .loop import ControlLoop, TimerHandle

MAX_FRAME_FAILURES = 10
FPS_WINDOW_S = 2.0


@dataclass
class RuntimeContext:
    """Holds the wired components and owns their lifecycle; avoids global singletons."""

    config: dict
    loop: ControlLoop
    source: Optional[ObservationSource]
    detector: Any
    pipeline: DetectionPipeline
    surface: FrameOverlaySurface
    renderer: OverlayRenderer
    environment: EnvironmentContext
    store: PersistenceClient
    allocator: SequenceAllocator
    persister: SnapshotPersister
    scheduler: SnapshotScheduler
    status_display: StatusDisplay
    preview: PreviewRenderer
    web_state: Any = None

    # Observability
    system_stats: dict = field(default_factory=dict)

    _timers: List[TimerHandle] = field(default_factory=list)
    _capture_thread: Optional[threading.Thread] = None
    _capturing: bool = False

    # -------------------------------------------------------------------------
    # Capture thread
    # -------------------------------------------------------------------------

    def handle_frame(self, frame_data) -> None:
        """Fan one captured frame out to detection and the preview."""
        self.pipeline.deliver(frame_data)
        self.preview.submit_frame(frame_data)

    def _capture_loop(self) -> None:
        failures = 0
        window_start = time.time()
        window_frames = 0

        while self._capturing:
            frame_data = self.source.read()
            if frame_data is None:
                failures += 1
                if failures >= MAX_FRAME_FAILURES:
                    logging.error(f"Too many consecutive frame read failures ({failures}), stopping")
                    self.loop.call_soon_threadsafe(self.loop.stop)
                    break
                logging.warning(f"Failed to read frame ({failures}/{MAX_FRAME_FAILURES}), continuing...")
                time.sleep(1)
                continue

            failures = 0
            self.handle_frame(frame_data)

            window_frames += 1
            elapsed = time.time() - window_start
            if elapsed >= FPS_WINDOW_S:
                self.update_fps(window_frames / elapsed)
                window_start = time.time()
                window_frames = 0

    def update_fps(self, fps: float) -> None:
        self.system_stats["fps"] = round(fps, 1)
        if self.web_state is not None:
            self.web_state.update_system_stats({"fps": self.system_stats["fps"]})

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Open the camera and start every background component."""
        self.persister.start()
        self.pipeline.start()

        self.environment.request_refresh()
        env_cfg = self.config.get("environment", {}) or {}
        refresh_interval = float(env_cfg.get("refresh_interval_s", 0) or 0)
        if refresh_interval > 0:
            self._timers.append(self.loop.call_every(refresh_interval, self.environment.request_refresh))

        display_cfg = self.config.get("display", {}) or {}
        preview_fps = max(1, int(display_cfg.get("preview_fps", 15)))
        self._timers.append(self.loop.call_every(1.0 / preview_fps, self.preview.render))

        self.scheduler.start()

        if self.source is not None:
            self.source.open()
            self._capturing = True
            self._capture_thread = threading.Thread(target=self._capture_loop, name="Capture", daemon=True)
            self._capture_thread.start()

        self.system_stats["start_time"] = time.time()
        logging.info("Passenger monitor started")

    def run(self) -> None:
        """Start, then run the control loop on this thread until stopped."""
        self.start()
        try:
            self.loop.run_forever()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop everything in reverse start order. Safe to call more than once."""
        self._capturing = False
        if self._capture_thread is not None:
            self._capture_thread.join(timeout=2.0)
            self._capture_thread = None
        if self.source is not None:
            self.source.close()

        self.scheduler.stop()
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

        self.pipeline.stop()
        self.persister.stop()
        self.environment.close()
        self.preview.close()

        close = getattr(self.store, "close", None)
        if callable(close):
            close()
        logging.info("Passenger monitor stopped")
