"""
YOLO people detector (Ultralytics).

Optional backend: requires `pip install ultralytics` and a model file
(e.g., yolov8n.pt). Only the person class is kept.
"""

from __future__ import annotations

from typing import List

import numpy as np

from common.exceptions import DetectionError
from models.config import YoloConfig
from models.detection import BoundingRegion
from .base import validate_frame


def _as_numpy(values) -> np.ndarray:
    return values.cpu().numpy() if hasattr(values, "cpu") else np.asarray(values)


class YoloPersonDetector:
    def __init__(self, cfg: YoloConfig, model=None):
        self.cfg = cfg
        if model is not None:
            self._model = model
            return
        try:
            from ultralytics import YOLO  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or switch detection.backend to 'hog'."
            ) from e

        self._model = YOLO(cfg.model)

    def detect(self, frame: np.ndarray) -> List[BoundingRegion]:
        try:
            validate_frame(frame)
            results = self._model.predict(
                source=frame,
                conf=self.cfg.conf_threshold,
                iou=self.cfg.iou_threshold,
                classes=[self.cfg.person_class_id],
                verbose=False,
            )
        except ValueError as e:
            raise DetectionError(str(e)) from e
        except Exception as e:
            raise DetectionError(f"YOLO inference failed: {e}") from e

        if not results:
            return []

        r0 = results[0]
        boxes = getattr(r0, "boxes", None)
        if boxes is None or len(boxes) == 0:
            return []

        frame_h, frame_w = frame.shape[:2]
        xyxy = _as_numpy(boxes.xyxy)
        conf = _as_numpy(boxes.conf)
        cls = _as_numpy(boxes.cls)

        out: List[BoundingRegion] = []
        for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls):
            if int(k) != self.cfg.person_class_id:
                continue
            out.append(
                BoundingRegion.from_pixels(
                    float(x1), float(y1), float(x2), float(y2),
                    frame_w, frame_h,
                    confidence=float(c),
                )
            )
        return out
