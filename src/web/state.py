import threading
import time

from models.detection import DetectionState
from models.environment import PENDING_READING


class SharedState:
    """
    Singleton class to share state between the control loop and the
    FastAPI web server.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance.frame_lock = threading.Lock()
                    cls._instance.data_lock = threading.Lock()
                    cls._instance.reset()
        return cls._instance

    def reset(self):
        """Forget everything published so far (startup and tests)."""
        with self.frame_lock:
            self.frame = None
        with self.data_lock:
            self.config = None
            self.snapshot = None
            self.snapshot_key = None
            self.detection = DetectionState.empty()
            self.reading = PENDING_READING
            self.system_stats = {
                "fps": 0.0,
                "start_time": time.time(),
                "last_frame_ts": None,
                "frames_processed": 0,
                "frames_dropped": 0,
                "detection_failures": 0,
                "ticks": 0,
                "snapshots_saved": 0,
                "snapshot_failures": 0,
            }

    # -------------------------------------------------------------------------
    # Preview frame
    # -------------------------------------------------------------------------

    def set_frame(self, frame, captured_at=None):
        """
        Update the annotated preview frame.

        captured_at is the camera timestamp of the underlying frame; freshness
        warnings are computed from it, not from when the preview was drawn.
        """
        if frame is None:
            return
        with self.frame_lock:
            self.frame = frame.copy()
        with self.data_lock:
            self.system_stats["last_frame_ts"] = captured_at if captured_at is not None else time.time()

    def get_frame(self):
        with self.frame_lock:
            if self.frame is None:
                return None
            return self.frame.copy()

    # -------------------------------------------------------------------------
    # Pipeline outputs
    # -------------------------------------------------------------------------

    def set_config(self, config):
        with self.data_lock:
            self.config = config

    def get_config_copy(self):
        with self.data_lock:
            if self.config is None:
                return None
            return dict(self.config)

    def set_detection(self, detection_state):
        with self.data_lock:
            self.detection = detection_state

    def set_snapshot(self, snapshot, key=None):
        with self.data_lock:
            self.snapshot = snapshot
            self.snapshot_key = key
            self.system_stats["ticks"] += 1

    def set_reading(self, reading):
        """Publish the environment reading as soon as a refresh commits it."""
        with self.data_lock:
            self.reading = reading

    def get_snapshot(self):
        """Return (snapshot, key); snapshot is None before the first tick."""
        with self.data_lock:
            return self.snapshot, self.snapshot_key

    def update_system_stats(self, stats):
        with self.data_lock:
            self.system_stats.update(stats)

    def get_system_stats_copy(self):
        """Return a shallow copy of current system stats."""
        with self.data_lock:
            return dict(self.system_stats)

    def get_view(self):
        """Consistent copy of everything /api/status reports."""
        with self.data_lock:
            return {
                "detection": self.detection,
                "reading": self.reading,
                "snapshot": self.snapshot,
                "snapshot_key": self.snapshot_key,
                "stats": dict(self.system_stats),
            }


# Global instance
state = SharedState()
