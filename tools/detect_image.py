#!/usr/bin/env python3
"""
Run the configured person detector on a single image or camera frame.

Useful for tuning detection settings without starting the full monitor.

Usage:
    python tools/detect_image.py --image path/to/image.jpg
    python tools/detect_image.py --device 0 --backend yolo --model yolov8n.pt
    python tools/detect_image.py --image crowd.jpg --output annotated.jpg
"""

import argparse
import os
import sys
import time

# Add project directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

import cv2

from common.exceptions import DetectionError
from detection import create_detector
from pipeline.overlay import draw_regions


def grab_frame(device_id: int):
    cap = cv2.VideoCapture(device_id)
    if not cap.isOpened():
        print(f"❌ Cannot open camera {device_id}")
        return None
    # Let auto exposure settle
    for _ in range(5):
        cap.read()
    ret, frame = cap.read()
    cap.release()
    return frame if ret else None


def main():
    parser = argparse.ArgumentParser(description="Run person detection on one image")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=str, help="Image file to analyze")
    source.add_argument("--device", type=int, help="Camera index to grab a frame from")
    parser.add_argument("--backend", choices=["hog", "yolo"], default="hog")
    parser.add_argument("--model", type=str, default="yolov8n.pt", help="YOLO model (yolo backend only)")
    parser.add_argument("--conf", type=float, default=0.35, help="YOLO confidence threshold")
    parser.add_argument("--output", type=str, help="Write the annotated image here")
    args = parser.parse_args()

    frame = cv2.imread(args.image) if args.image else grab_frame(args.device)
    if frame is None:
        print("❌ No frame to analyze")
        return 1

    detection_cfg = {"backend": args.backend}
    if args.backend == "yolo":
        detection_cfg["yolo"] = {"model": args.model, "conf_threshold": args.conf}
    detector = create_detector(detection_cfg)

    started = time.perf_counter()
    try:
        regions = detector.detect(frame)
    except DetectionError as e:
        print(f"❌ Detection failed: {e}")
        return 1
    elapsed_ms = (time.perf_counter() - started) * 1000.0

    h, w = frame.shape[:2]
    print(f"✅ {len(regions)} people detected in {elapsed_ms:.0f} ms ({w}x{h}, backend={args.backend})")
    for i, region in enumerate(regions, 1):
        x1, y1, x2, y2 = region.to_pixels(w, h)
        conf = f"{region.confidence:.2f}" if region.confidence is not None else "-"
        print(f"   {i}: ({x1}, {y1}) - ({x2}, {y2}) conf={conf}")

    if args.output:
        cv2.imwrite(args.output, draw_regions(frame, regions))
        print(f"   Annotated image written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
