"""
Utility functions for cloud operations.
"""

import logging
from typing import Any, Dict

REQUIRED_CLOUD_SETTINGS = ("project_id", "credentials_file")
PATH_SETTINGS = ("root_collection", "root_document", "history_collection")


def check_cloud_config(cloud: Dict[str, Any]) -> bool:
    """
    Check if the Firestore configuration is usable.

    Args:
        cloud: The 'cloud' configuration section

    Returns:
        Boolean indicating if the configuration is valid
    """
    if not isinstance(cloud, dict):
        logging.error("Invalid cloud configuration: 'cloud' section must be a mapping")
        return False

    for setting in REQUIRED_CLOUD_SETTINGS:
        if not cloud.get(setting):
            logging.error(f"Invalid cloud configuration: missing 'cloud.{setting}'")
            return False

    for setting in PATH_SETTINGS:
        value = cloud.get(setting)
        if value is not None and (not isinstance(value, str) or not value or "/" in value):
            logging.error(f"Invalid cloud configuration: 'cloud.{setting}' must be a single path segment")
            return False

    return True


def format_document_path(*segments: str) -> str:
    """Join Firestore path segments (collection/document/...)."""
    return "/".join(segments)
