from __future__ import annotations

import os
import platform
import shutil
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

THERMAL_PATHS = (
    "/sys/class/thermal/thermal_zone0/temp",
    "/sys/class/hwmon/hwmon0/temp1_input",
)


@dataclass
class HealthService:
    cfg: Dict[str, Any]

    def get_health_summary(self) -> Dict[str, Any]:
        storage = self.cfg.get("storage", {}) or {}
        return {
            "status": "ok",
            "timestamp": time.time(),
            "platform": platform.platform(),
            "python": platform.python_version(),
            "storage_backend": storage.get("backend", "sqlite"),
            "storage_db_path": storage.get("local_database_path"),
            "detection_backend": (self.cfg.get("detection", {}) or {}).get("backend", "hog"),
            "log_path": self.cfg.get("log_path"),
        }

    @staticmethod
    def disk_free_pct(path: Optional[str] = None) -> Optional[float]:
        try:
            usage = shutil.disk_usage(path or ".")
        except OSError:
            return None
        if not usage.total:
            return None
        return usage.free / usage.total * 100

    @staticmethod
    def read_cpu_temp_c() -> Optional[float]:
        """
        Best-effort CPU temperature read; returns None if unavailable.
        """
        for path in THERMAL_PATHS:
            if not os.path.exists(path):
                continue
            try:
                with open(path, "r") as f:
                    raw = f.read().strip()
                # Millidegrees on most kernels
                return float(raw) / 1000.0 if len(raw) > 3 else float(raw)
            except (OSError, ValueError):
                continue
        return None
