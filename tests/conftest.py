"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from runtime.loop import ControlLoop, ManualClock  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  backend: "hog"

scheduler:
  interval_s: 5.0

environment:
  provider: "static"
  latitude: 52.52
  longitude: 13.40

storage:
  backend: "sqlite"
  local_database_path: "data/test.sqlite"
  key_width: 3

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "backend": "hog",
        },
        "scheduler": {
            "interval_s": 5.0,
        },
        "environment": {
            "provider": "static",
            "latitude": 52.52,
            "longitude": 13.40,
        },
        "storage": {
            "backend": "sqlite",
            "local_database_path": "data/test.sqlite",
            "key_width": 3,
            "write_queue_size": 100,
        },
        "web": {
            "enabled": False,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def manual_clock():
    """Clock that only moves when advanced."""
    return ManualClock(start_time=1_700_000_000.0)


@pytest.fixture
def loop(manual_clock):
    """Control loop driven by the manual clock; tests call run_pending()."""
    return ControlLoop(clock=manual_clock)


@pytest.fixture
def blank_frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)
