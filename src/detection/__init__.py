"""
Passenger Monitor - Detection Module

This module turns camera frames into normalized person regions.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from models.config import DetectionConfig
from .base import Detector
from .hog import HogPersonDetector


def create_detector(detection_cfg: Dict[str, Any]) -> Detector:
    """
    Create a detector from the `detection` config section.

    Args:
        detection_cfg: Detection config dict (backend: "hog" or "yolo").
    """
    cfg = DetectionConfig.from_dict(detection_cfg or {})
    if cfg.backend == "yolo":
        from .yolo import YoloPersonDetector

        if cfg.yolo is None or not cfg.yolo.model:
            raise ValueError("detection.yolo.model is required when detection.backend is 'yolo'")
        logging.info(f"Using YOLO person detector: model={cfg.yolo.model}")
        return YoloPersonDetector(cfg.yolo)

    if cfg.backend != "hog":
        raise ValueError(f"Unknown detection backend: {cfg.backend}")
    return HogPersonDetector(cfg.hog)


__all__ = ["Detector", "HogPersonDetector", "create_detector"]
