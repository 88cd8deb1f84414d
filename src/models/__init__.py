"""
Typed models for the passenger monitor application.
"""

from .frame import FrameData
from .detection import BoundingRegion, DetectionState
from .environment import Coordinates, EnvironmentReading, PENDING_READING
from .snapshot import Snapshot
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    HogConfig,
    YoloConfig,
    SchedulerConfig,
    EnvironmentConfig,
    StorageConfig,
    CloudConfig,
    WebConfig,
    DisplayConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingRegion",
    "DetectionState",
    # Environment
    "Coordinates",
    "EnvironmentReading",
    "PENDING_READING",
    # Snapshot
    "Snapshot",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "HogConfig",
    "YoloConfig",
    "SchedulerConfig",
    "EnvironmentConfig",
    "StorageConfig",
    "CloudConfig",
    "WebConfig",
    "DisplayConfig",
]
