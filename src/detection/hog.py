"""
OpenCV HOG + linear SVM people detector.

Works on any machine with opencv-python installed; no model download.
Frames wider than max_width are downscaled before detection and the boxes
are normalized against the resized frame, so regions stay in [0, 1].
"""

from __future__ import annotations

import logging
from typing import List

import cv2
import numpy as np

from common.exceptions import DetectionError
from models.config import HogConfig
from models.detection import BoundingRegion
from .base import validate_frame


class HogPersonDetector:
    def __init__(self, cfg: HogConfig = None):
        self.cfg = cfg or HogConfig()
        self._hog = cv2.HOGDescriptor()
        self._hog.setSVMDetector(cv2.HOGDescriptor_getDefaultPeopleDetector())
        logging.info(
            f"HOG person detector ready (stride={self.cfg.win_stride}, scale={self.cfg.scale}, "
            f"max_width={self.cfg.max_width})"
        )

    def _prepare(self, frame: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]
        if self.cfg.max_width and w > self.cfg.max_width:
            ratio = self.cfg.max_width / float(w)
            frame = cv2.resize(frame, (self.cfg.max_width, max(1, int(h * ratio))))
        return frame

    def detect(self, frame: np.ndarray) -> List[BoundingRegion]:
        try:
            validate_frame(frame)
            image = self._prepare(frame)
            stride = (self.cfg.win_stride, self.cfg.win_stride)
            padding = (self.cfg.padding, self.cfg.padding)
            rects, weights = self._hog.detectMultiScale(
                image,
                hitThreshold=self.cfg.hit_threshold,
                winStride=stride,
                padding=padding,
                scale=self.cfg.scale,
            )
        except (cv2.error, ValueError) as e:
            raise DetectionError(f"HOG detection failed: {e}") from e

        img_h, img_w = image.shape[:2]
        weights = np.asarray(weights).reshape(-1) if len(rects) else np.array([])

        out: List[BoundingRegion] = []
        for (x, y, w, h), score in zip(rects, weights):
            out.append(
                BoundingRegion.from_pixels(
                    float(x),
                    float(y),
                    float(x + w),
                    float(y + h),
                    img_w,
                    img_h,
                    confidence=float(score),
                )
            )
        # Left-to-right, then top-to-bottom
        out.sort(key=lambda r: (r.x, r.y))
        return out
