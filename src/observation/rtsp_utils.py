"""
RTSP helpers: credential injection from a secrets file and log-safe URLs.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Union
from urllib.parse import urlparse, urlunparse

import yaml


def sanitize_url(device_id: Union[int, str]) -> str:
    """Return device_id with any password replaced by '***'."""
    if not isinstance(device_id, str) or "@" not in device_id:
        return str(device_id)
    parsed = urlparse(device_id)
    if not parsed.password:
        return device_id
    netloc = f"{parsed.username}:***@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def _with_credentials(url: str, username: str, password: str) -> str:
    parsed = urlparse(url)
    netloc = f"{username}:{password}@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def inject_rtsp_credentials(camera_cfg: Dict[str, Any]) -> None:
    """
    Fill camera_cfg["device_id"] from camera_cfg["secrets_file"] (in place).

    The secrets file is YAML with username, password and optionally
    rtsp_url (used when device_id is not already an RTSP URL). Nothing
    changes when there is no secrets file or no RTSP URL to use.
    """
    secrets_file = camera_cfg.get("secrets_file")
    if not secrets_file:
        return

    if not os.path.exists(secrets_file):
        logging.warning(f"Secrets file not found: {secrets_file}")
        return

    try:
        with open(secrets_file, "r") as f:
            secrets = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to read RTSP secrets from {secrets_file}: {e}")
        return

    device_id = camera_cfg.get("device_id", "")
    if isinstance(device_id, str) and device_id.startswith("rtsp://"):
        base_url = device_id
    elif secrets.get("rtsp_url"):
        base_url = secrets["rtsp_url"]
        logging.info("Using RTSP URL from secrets file")
    else:
        return

    username = secrets.get("username")
    password = secrets.get("password")
    if username and password and "@" not in base_url:
        camera_cfg["device_id"] = _with_credentials(base_url, username, password)
        logging.info("RTSP credentials injected into device URL")
    else:
        camera_cfg["device_id"] = base_url
