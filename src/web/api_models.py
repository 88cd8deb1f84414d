from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RegionModel(BaseModel):
    x: float
    y: float
    width: float
    height: float
    confidence: Optional[float] = None


class SnapshotResponse(BaseModel):
    key: Optional[str] = Field(None, description="Record key assigned by the sequence allocator")
    timestamp: float
    passenger_count: int
    condition: str
    temperature: str


class EnvironmentModel(BaseModel):
    condition: str
    temperature: str
    pending: bool


class StatusResponse(BaseModel):
    """
    Status response for dashboard polling.
    """
    running: bool = Field(..., description="True if frames are arriving")
    passenger_count: int = Field(0, description="People in the most recent analyzed frame")
    regions: List[RegionModel] = Field(default_factory=list)
    environment: EnvironmentModel
    last_snapshot: Optional[SnapshotResponse] = None
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last preview frame")
    fps_capture: Optional[float] = Field(None, description="Camera capture FPS")
    uptime_seconds: int = 0
    pipeline: Dict[str, int] = Field(default_factory=dict, description="Frame and snapshot counters")
    cpu_temp_c: Optional[float] = Field(None, description="CPU temperature in Celsius")
    disk_free_pct: Optional[float] = Field(None, description="Disk free percentage")
    warnings: List[str] = Field(default_factory=list, description="Active warnings")
    timestamp: float
