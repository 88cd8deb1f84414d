from __future__ import annotations

import os
import time
from typing import List, Optional

import cv2
from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from ..api_models import EnvironmentModel, RegionModel, SnapshotResponse, StatusResponse
from ..services.health_service import HealthService
from ..state import state

router = APIRouter()


def _compute_warnings(
    last_frame_age_s: Optional[float],
    disk_free_pct: Optional[float],
    cpu_temp_c: Optional[float],
    environment_pending: bool = False,
) -> List[str]:
    """
    Compute warning flags for the status endpoint.

    Thresholds:
    - camera_stale: last_frame_age_s > 2
    - camera_offline: last_frame_age_s > 10 (or no frame yet)
    - disk_low: disk_free_pct < 10
    - temp_high: cpu_temp_c > 80
    - environment_pending: no successful weather refresh yet
    """
    warnings = []

    if last_frame_age_s is None or last_frame_age_s > 10:
        warnings.append("camera_offline")
    elif last_frame_age_s > 2:
        warnings.append("camera_stale")

    if disk_free_pct is not None and disk_free_pct < 10:
        warnings.append("disk_low")

    if cpu_temp_c is not None and cpu_temp_c > 80:
        warnings.append("temp_high")

    if environment_pending:
        warnings.append("environment_pending")

    return warnings


def _snapshot_response(snapshot, key) -> SnapshotResponse:
    return SnapshotResponse(key=key, **snapshot.to_record())


@router.get("/health")
def health():
    cfg = state.get_config_copy() or {}
    return HealthService(cfg=cfg).get_health_summary()


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Live pipeline status: current count and regions, environment reading,
    last snapshot, frame freshness and host warnings.
    """
    now = time.time()
    view = state.get_view()
    stats = view["stats"]

    last_frame_ts = stats.get("last_frame_ts")
    last_frame_age_s = (now - last_frame_ts) if last_frame_ts else None

    cfg = state.get_config_copy() or {}
    db_path = (cfg.get("storage", {}) or {}).get("local_database_path")
    disk_free_pct = HealthService.disk_free_pct(os.path.dirname(db_path) if db_path else None)
    cpu_temp_c = HealthService.read_cpu_temp_c()

    reading = view["reading"]
    detection = view["detection"]
    snapshot = view["snapshot"]
    start_time = stats.get("start_time") or now

    return StatusResponse(
        running=last_frame_age_s is not None and last_frame_age_s <= 10,
        passenger_count=detection.count,
        regions=[
            RegionModel(x=r.x, y=r.y, width=r.width, height=r.height, confidence=r.confidence)
            for r in detection.regions
        ],
        environment=EnvironmentModel(
            condition=reading.condition,
            temperature=reading.temperature,
            pending=reading.is_pending,
        ),
        last_snapshot=_snapshot_response(snapshot, view["snapshot_key"]) if snapshot else None,
        last_frame_age_s=round(last_frame_age_s, 2) if last_frame_age_s is not None else None,
        fps_capture=stats.get("fps"),
        uptime_seconds=int(now - start_time),
        pipeline={
            "frames_processed": int(stats.get("frames_processed", 0)),
            "frames_dropped": int(stats.get("frames_dropped", 0)),
            "detection_failures": int(stats.get("detection_failures", 0)),
            "ticks": int(stats.get("ticks", 0)),
            "snapshots_saved": int(stats.get("snapshots_saved", 0)),
            "snapshot_failures": int(stats.get("snapshot_failures", 0)),
        },
        cpu_temp_c=round(cpu_temp_c, 1) if cpu_temp_c is not None else None,
        disk_free_pct=round(disk_free_pct, 1) if disk_free_pct is not None else None,
        warnings=_compute_warnings(last_frame_age_s, disk_free_pct, cpu_temp_c, reading.is_pending),
        timestamp=now,
    )


@router.get("/snapshots/latest", response_model=SnapshotResponse)
def latest_snapshot():
    snapshot, key = state.get_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No snapshot recorded yet")
    return _snapshot_response(snapshot, key)


@router.get("/camera/live.mjpg")
def camera_live_stream(fps: int = 5):
    """
    Stream the annotated preview (overlay + status caption) as MJPEG.
    """
    fps = max(1, min(30, int(fps)))
    delay = 1.0 / fps

    def gen():
        while True:
            frame = state.get_frame()
            if frame is None:
                time.sleep(0.1)
                continue

            ok, buf = cv2.imencode(".jpg", frame)
            if not ok:
                time.sleep(delay)
                continue
            jpg = buf.tobytes()
            yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            time.sleep(delay)

    return StreamingResponse(gen(), media_type="multipart/x-mixed-replace; boundary=frame")
