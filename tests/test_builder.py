"""
Wiring tests: build_context with injected fakes, driven by a manual clock.
"""

import numpy as np
import pytest

from models.detection import BoundingRegion
from models.environment import PENDING_READING, EnvironmentReading
from models.frame import FrameData
from runtime.builder import build_context, create_store
from storage.database import SnapshotDatabase
from web.state import state as web_state


# =============================================================================
# Mock Classes
# =============================================================================

class FixedDetector:
    def __init__(self, n=0):
        self.n = n

    def detect(self, frame):
        return [BoundingRegion(0.1 * i, 0.1, 0.05, 0.3) for i in range(self.n)]


class MemoryStore:
    def __init__(self, count=0):
        self.count = count
        self.records = {}
        self.latest = None
        self.closed = False

    def save(self, key, snapshot):
        self.records[key] = snapshot

    def upsert_latest(self, snapshot):
        self.latest = snapshot

    def initial_count(self):
        return self.count

    def close(self):
        self.closed = True


class ManualEnvironment:
    """Environment whose reading the test sets directly."""

    def __init__(self):
        self.reading = PENDING_READING
        self.refreshes = 0
        self.closed = False
        self.listeners = []

    def current_reading(self):
        return self.reading

    def request_refresh(self):
        self.refreshes += 1

    def add_listener(self, callback):
        self.listeners.append(callback)

    def commit(self, reading):
        self.reading = reading
        for listener in self.listeners:
            listener(reading)

    def close(self):
        self.closed = True


def _frame(index=1):
    return FrameData(frame=np.zeros((72, 128, 3), dtype=np.uint8), timestamp=float(index), frame_index=index)


@pytest.fixture
def wired(valid_config, loop):
    store = MemoryStore(count=41)
    environment = ManualEnvironment()
    detector = FixedDetector(n=2)
    ctx = build_context(
        valid_config,
        loop=loop,
        detector=detector,
        store=store,
        environment=environment,
        build_source=False,
    )
    yield ctx, store, environment, detector
    ctx.shutdown()


class TestBuildContext:
    """End-to-end behavior of the wired components."""

    def test_sequence_seeded_from_store(self, wired):
        ctx, _, _, _ = wired
        assert ctx.allocator.current == 41
        assert ctx.source is None

    def test_ticks_persist_with_count_and_reading(self, wired, manual_clock, loop):
        ctx, store, environment, _ = wired
        ctx.start()
        assert environment.refreshes == 1

        # First tick: nothing analyzed yet, reading still pending
        manual_clock.advance(5.0)
        loop.run_pending()

        ctx.pipeline.on_frame(_frame())
        environment.reading = EnvironmentReading("Clear", "21°C")
        manual_clock.advance(5.0)
        loop.run_pending()

        assert ctx.persister.flush(timeout=5.0)
        assert sorted(store.records) == ["042", "043"]
        assert store.records["042"].passenger_count == 0
        assert store.records["042"].condition == "pending"
        assert store.records["043"].passenger_count == 2
        assert store.records["043"].temperature == "21°C"
        assert store.latest == store.records["043"]

        assert ctx.surface.caption[-1] == "People: 2"
        assert len(ctx.surface.attached) == 2

    def test_preview_renders_annotated_frame(self, wired, manual_clock, loop):
        ctx, _, _, _ = wired
        ctx.start()
        ctx.handle_frame(_frame())
        manual_clock.advance(1.0)
        loop.run_pending()
        assert ctx.preview.rendered >= 1

    def test_shutdown_closes_store_and_environment(self, wired):
        ctx, store, environment, _ = wired
        ctx.start()
        ctx.shutdown()
        ctx.shutdown()
        assert store.closed
        assert environment.closed
        assert not ctx.persister.is_running

    def test_environment_refresh_timer(self, valid_config, loop, manual_clock):
        valid_config["environment"]["refresh_interval_s"] = 60
        environment = ManualEnvironment()
        ctx = build_context(
            valid_config,
            loop=loop,
            detector=FixedDetector(),
            store=MemoryStore(),
            environment=environment,
            build_source=False,
        )
        try:
            ctx.start()
            for _ in range(2):
                manual_clock.advance(60.0)
                loop.run_pending()
            assert environment.refreshes == 3
        finally:
            ctx.shutdown()


class TestWebPublishing:
    def test_state_follows_pipeline_and_ticks(self, valid_config, loop, manual_clock):
        web_state.reset()
        ctx = build_context(
            valid_config,
            loop=loop,
            detector=FixedDetector(n=3),
            store=MemoryStore(count=4),
            environment=ManualEnvironment(),
            web_state=web_state,
            build_source=False,
        )
        try:
            ctx.start()
            ctx.pipeline.on_frame(_frame())
            manual_clock.advance(5.0)
            loop.run_pending()

            view = web_state.get_view()
            assert view["detection"].count == 3
            assert view["snapshot"].passenger_count == 3
            assert view["snapshot_key"] == "005"
            assert view["stats"]["frames_processed"] == 1
            assert web_state.get_config_copy()["storage"]["backend"] == "sqlite"
            assert web_state.get_frame() is None
        finally:
            ctx.shutdown()
            web_state.reset()

    def test_environment_reading_published_on_commit(self, valid_config, loop):
        web_state.reset()
        environment = ManualEnvironment()
        ctx = build_context(
            valid_config,
            loop=loop,
            detector=FixedDetector(),
            store=MemoryStore(),
            environment=environment,
            web_state=web_state,
            build_source=False,
        )
        try:
            ctx.start()
            assert web_state.get_view()["reading"] == PENDING_READING

            # No tick has run yet; the status view follows the refresh directly
            environment.commit(EnvironmentReading("Clear", "21°C"))
            view = web_state.get_view()
            assert view["reading"] == EnvironmentReading("Clear", "21°C")
            assert view["snapshot"] is None
        finally:
            ctx.shutdown()
            web_state.reset()


class TestCreateStore:
    def test_sqlite(self, valid_config, tmp_path):
        valid_config["storage"]["local_database_path"] = str(tmp_path / "snapshots.sqlite")
        store = create_store(valid_config)
        try:
            assert isinstance(store, SnapshotDatabase)
            assert store.initial_count() == 0
        finally:
            store.close()

    def test_unknown_backend(self, valid_config):
        valid_config["storage"]["backend"] = "bigquery"
        with pytest.raises(ValueError):
            create_store(valid_config)
