"""
Passenger monitor: camera-based people counting with periodic snapshots.

Every frame from the camera is analyzed for people; the current count is
drawn as an overlay and, every scheduler interval, a snapshot (time, count,
outdoor condition and temperature) is written to the configured store.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the annotated preview in a local window
"""

import os
import sys
import argparse
import logging
import threading
from typing import Dict, Any, Tuple, Optional

import yaml
import uvicorn

from cloud.utils import check_cloud_config
from common.exceptions import ConfigurationError
from ops.logging import setup_logging
from runtime.builder import build_context
from web.app import create_app
from web.state import state as web_state

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    config_dir = os.path.dirname(config_path)
    try:
        base_path = os.path.join(config_dir, "default.yaml")
        merged: Dict[str, Any] = _read_yaml(base_path) if os.path.exists(base_path) else {}

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        if os.path.exists(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['camera', 'detection', 'storage', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings
    camera = config.get('camera', {}) or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (URL)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' not in camera:
        return False, "Missing camera.resolution"
    if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in camera['resolution']):
        return False, "camera.resolution values must be positive integers"

    if 'fps' not in camera:
        return False, "Missing camera.fps"
    if not isinstance(camera['fps'], int) or camera['fps'] <= 0:
        return False, "camera.fps must be a positive integer"

    if camera.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Validate detection settings
    detection = config.get('detection', {}) or {}
    backend = detection.get('backend', 'hog')
    if backend not in ('hog', 'yolo'):
        return False, "detection.backend must be one of: hog, yolo"
    if backend == 'yolo':
        yolo_cfg = detection.get('yolo', {}) or {}
        if not isinstance(yolo_cfg.get('model'), str) or not yolo_cfg.get('model'):
            return False, "detection.yolo.model is required when detection.backend is 'yolo'"
        for key in ('conf_threshold', 'iou_threshold'):
            if key in yolo_cfg and not (_is_number(yolo_cfg[key]) and 0 <= yolo_cfg[key] <= 1):
                return False, f"detection.yolo.{key} must be a number between 0 and 1"
    hog_cfg = detection.get('hog', {}) or {}
    if 'scale' in hog_cfg and not (_is_number(hog_cfg['scale']) and hog_cfg['scale'] > 1):
        return False, "detection.hog.scale must be a number greater than 1"

    # Validate scheduler settings
    scheduler = config.get('scheduler', {}) or {}
    if 'interval_s' in scheduler and not (_is_number(scheduler['interval_s']) and scheduler['interval_s'] > 0):
        return False, "scheduler.interval_s must be a positive number"

    # Validate environment settings
    environment = config.get('environment', {}) or {}
    provider = environment.get('provider', 'ip')
    if provider not in ('static', 'ip'):
        return False, "environment.provider must be one of: static, ip"
    if provider == 'static':
        lat, lon = environment.get('latitude'), environment.get('longitude')
        if not (_is_number(lat) and -90 <= lat <= 90):
            return False, "environment.latitude must be between -90 and 90 for the static provider"
        if not (_is_number(lon) and -180 <= lon <= 180):
            return False, "environment.longitude must be between -180 and 180 for the static provider"
    if environment.get('temperature_unit', 'celsius') not in ('celsius', 'fahrenheit'):
        return False, "environment.temperature_unit must be one of: celsius, fahrenheit"
    refresh = environment.get('refresh_interval_s', 0)
    if refresh is not None and not (_is_number(refresh) and refresh >= 0):
        return False, "environment.refresh_interval_s must be a non-negative number"

    # Validate storage settings
    storage = config.get('storage', {}) or {}
    storage_backend = storage.get('backend', 'sqlite')
    if storage_backend not in ('sqlite', 'firestore'):
        return False, "storage.backend must be one of: sqlite, firestore"
    if storage_backend == 'sqlite':
        if 'local_database_path' not in storage:
            return False, "Missing storage.local_database_path"
        if not isinstance(storage['local_database_path'], str):
            return False, "storage.local_database_path must be a string"
    elif not check_cloud_config(config.get('cloud')):
        return False, "storage.backend is 'firestore' but the cloud section is invalid"

    key_width = storage.get('key_width', 3)
    if not isinstance(key_width, int) or isinstance(key_width, bool) or key_width < 1:
        return False, "storage.key_width must be a positive integer"
    queue_size = storage.get('write_queue_size', 1000)
    if not isinstance(queue_size, int) or isinstance(queue_size, bool) or queue_size < 1:
        return False, "storage.write_queue_size must be a positive integer"

    # Validate web settings
    web = config.get('web', {}) or {}
    port = web.get('port', 5000)
    if not isinstance(port, int) or not (0 < port < 65536):
        return False, "web.port must be an integer between 1 and 65535"

    # Validate log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def start_web_server(host: str, port: int) -> threading.Thread:
    """Serve the status API from a daemon thread."""
    def run_web_app():
        uvicorn.run(
            create_app(),
            host=host,
            port=port,
            log_level="warning",
        )

    web_thread = threading.Thread(target=run_web_app, name="WebServer", daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on {host}:{port}")
    return web_thread


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Passenger Monitor')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the annotated preview window')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Passenger Monitor")

    try:
        ctx = build_context(config, web_state=web_state, window=args.display)
    except (ConfigurationError, ValueError) as e:
        logging.error(f"Startup failed: {e}")
        sys.exit(1)

    web_cfg = config.get('web', {}) or {}
    if web_cfg.get('enabled', True):
        start_web_server(web_cfg.get('host', '0.0.0.0'), int(web_cfg.get('port', 5000)))

    try:
        ctx.run()
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    except RuntimeError as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
