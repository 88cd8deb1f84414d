"""
Tests for the detection pipeline.

Most tests skip the worker thread: they call on_frame() directly and
then drain the control loop with run_pending().
"""

import threading
import time

import numpy as np
import pytest

from common.exceptions import DetectionError
from models.detection import BoundingRegion
from models.frame import FrameData
from pipeline.detection_pipeline import DetectionPipeline
from pipeline.overlay import FrameOverlaySurface, OverlayRenderer


# =============================================================================
# Mock Classes
# =============================================================================

class ScriptedDetector:
    """Returns (or raises) queued results in order."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class GatedDetector:
    """Blocks inside detect() until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def detect(self, frame):
        self.entered.set()
        self.release.wait(timeout=5.0)
        return []


def _worker_threads():
    return sum(1 for t in threading.enumerate() if t.name == "DetectionWorker")


def _regions(n):
    return [BoundingRegion(x=0.1 * i, y=0.1, width=0.05, height=0.3) for i in range(n)]


def _frame(index=0):
    return FrameData(frame=np.zeros((480, 640, 3), dtype=np.uint8), timestamp=1.0 + index, frame_index=index)


def _pipeline(loop, results):
    surface = FrameOverlaySurface(640, 480)
    renderer = OverlayRenderer(surface)
    pipeline = DetectionPipeline(ScriptedDetector(results), loop, renderer=renderer)
    return pipeline, renderer, surface


# =============================================================================
# Tests
# =============================================================================

class TestDetectionPipeline:
    """Count and overlay follow the latest analyzed frame."""

    def test_count_and_shapes_follow_result(self, loop):
        pipeline, renderer, surface = _pipeline(loop, [_regions(3), []])

        pipeline.on_frame(_frame(0))
        assert pipeline.count == 0  # not applied until the loop runs
        loop.run_pending()
        assert pipeline.count == 3
        assert renderer.shape_count == 3
        assert len(surface.attached) == 3

        pipeline.on_frame(_frame(1))
        loop.run_pending()
        assert pipeline.count == 0
        assert renderer.shape_count == 0
        assert surface.attached == []

    def test_shapes_replaced_not_accumulated(self, loop):
        pipeline, renderer, surface = _pipeline(loop, [_regions(2), _regions(4), _regions(1)])
        for i in range(3):
            pipeline.on_frame(_frame(i))
            loop.run_pending()
        assert pipeline.count == 1
        assert len(surface.attached) == 1

    def test_detector_failure_counts_as_zero(self, loop):
        pipeline, renderer, _ = _pipeline(loop, [_regions(2), DetectionError("bad frame"), _regions(1)])

        pipeline.on_frame(_frame(0))
        loop.run_pending()
        assert pipeline.count == 2

        assert pipeline.on_frame(_frame(1)) == []
        loop.run_pending()
        assert pipeline.count == 0
        assert renderer.shape_count == 0
        assert pipeline.stats.detection_failures == 1

        pipeline.on_frame(_frame(2))
        loop.run_pending()
        assert pipeline.count == 1

    def test_unexpected_error_is_contained(self, loop):
        pipeline, _, _ = _pipeline(loop, [RuntimeError("driver crashed")])
        assert pipeline.on_frame(_frame()) == []
        loop.run_pending()
        assert pipeline.count == 0
        assert pipeline.stats.detection_failures == 1

    def test_state_count_matches_regions(self, loop):
        pipeline, _, _ = _pipeline(loop, [_regions(5)])
        pipeline.on_frame(_frame())
        loop.run_pending()
        assert pipeline.state.count == len(pipeline.state.regions) == 5
        assert pipeline.current_count() == 5

    def test_listeners_notified_on_loop(self, loop):
        pipeline, _, _ = _pipeline(loop, [_regions(2)])
        seen = []
        pipeline.add_listener(lambda s: seen.append(s.count))
        pipeline.on_frame(_frame())
        assert seen == []
        loop.run_pending()
        assert seen == [2]

    def test_listener_error_isolated(self, loop):
        pipeline, _, _ = _pipeline(loop, [_regions(1)])
        seen = []

        def bad(_state):
            raise RuntimeError("listener broke")

        pipeline.add_listener(bad)
        pipeline.add_listener(lambda s: seen.append(s.count))
        pipeline.on_frame(_frame())
        loop.run_pending()
        assert seen == [1]


class TestFrameShedding:
    def test_deliver_keeps_only_latest(self, loop):
        pipeline, _, _ = _pipeline(loop, [])
        for i in range(5):
            pipeline.deliver(_frame(i))
        assert pipeline.stats.frames_delivered == 5
        assert pipeline.stats.frames_dropped == 4

    def test_worker_processes_latest_frame(self, loop):
        detector = ScriptedDetector([_regions(2)])
        pipeline = DetectionPipeline(detector, loop, take_timeout=0.05)
        pipeline.deliver(_frame(0))
        pipeline.deliver(_frame(1))
        pipeline.start()
        try:
            for _ in range(100):
                if pipeline.stats.frames_processed:
                    break
                time.sleep(0.01)
        finally:
            pipeline.stop()
        loop.run_pending()
        assert detector.calls == 1
        assert pipeline.stats.last_frame_ts == 2.0
        assert pipeline.count == 2

    def test_stop_is_idempotent(self, loop):
        pipeline, _, _ = _pipeline(loop, [])
        pipeline.start()
        pipeline.stop()
        pipeline.stop()

    def test_stop_during_slow_detect_keeps_single_worker(self, loop):
        detector = GatedDetector()
        pipeline = DetectionPipeline(detector, loop, take_timeout=0.05)
        pipeline.start()
        try:
            pipeline.deliver(_frame(0))
            assert detector.entered.wait(timeout=5.0)

            pipeline.stop(timeout=0.05)
            assert pipeline.is_running
            with pytest.raises(RuntimeError):
                pipeline.start()
            assert _worker_threads() == 1
        finally:
            detector.release.set()

        pipeline.stop(timeout=5.0)
        assert not pipeline.is_running

        pipeline.start()
        try:
            assert _worker_threads() == 1
        finally:
            pipeline.stop()
        assert not pipeline.is_running
