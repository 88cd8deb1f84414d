"""
Pipeline module for the passenger monitor.

The pipeline covers the per-frame and per-tick flow:
- Frame hand-off and detection (DetectionPipeline)
- Overlay maintenance (OverlayRenderer)
- Periodic snapshots (SnapshotScheduler)
- Status caption and annotated preview (StatusDisplay, PreviewRenderer)
"""

from .detection_pipeline import DetectionPipeline, PipelineStats
from .display import PreviewRenderer, StatusDisplay, format_status_lines
from .inbox import LatestSlot
from .overlay import FrameOverlaySurface, OverlayRenderer, OverlaySurface
from .scheduler import SchedulerState, SnapshotScheduler

__all__ = [
    "DetectionPipeline",
    "PipelineStats",
    "PreviewRenderer",
    "StatusDisplay",
    "format_status_lines",
    "LatestSlot",
    "FrameOverlaySurface",
    "OverlayRenderer",
    "OverlaySurface",
    "SchedulerState",
    "SnapshotScheduler",
]
