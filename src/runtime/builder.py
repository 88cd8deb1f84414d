"""
Component construction from the merged configuration dict.

Collaborators can be injected (tests pass fakes); anything not injected is
built from configuration.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from detection import create_detector
from environment import create_environment
from environment.context import EnvironmentContext
from models.config import CloudConfig, Config
from observation.base import ObservationSource
from observation.opencv_source import create_source_from_config
from pipeline.detection_pipeline import DetectionPipeline
from pipeline.display import PreviewRenderer, StatusDisplay
from pipeline.overlay import FrameOverlaySurface, OverlayRenderer
from pipeline.scheduler import SnapshotScheduler
from storage.base import PersistenceClient
from storage.database import SnapshotDatabase
from storage.persister import SnapshotPersister
from storage.sequence import SequenceAllocator
from .context import RuntimeContext
from .loop import ControlLoop


def create_store(config: Dict[str, Any]) -> PersistenceClient:
    """Build the configured snapshot store ("sqlite" or "firestore")."""
    storage = config.get("storage", {}) or {}
    backend = storage.get("backend", "sqlite")

    if backend == "firestore":
        from cloud.firestore import create_firestore_store

        return create_firestore_store(CloudConfig.from_dict(config.get("cloud") or {}))

    if backend != "sqlite":
        raise ValueError(f"Unknown storage backend: {backend}")
    db = SnapshotDatabase(storage.get("local_database_path", "data/snapshots.sqlite"))
    db.initialize()
    return db


def _publish_detection(web_state, pipeline: DetectionPipeline):
    def publish(detection_state) -> None:
        web_state.set_detection(detection_state)
        web_state.update_system_stats({
            "frames_processed": pipeline.stats.frames_processed,
            "frames_dropped": pipeline.stats.frames_dropped,
            "detection_failures": pipeline.stats.detection_failures,
        })
    return publish


def _publish_snapshot(web_state, persister: SnapshotPersister):
    def publish(snapshot) -> None:
        web_state.set_snapshot(snapshot, key=persister.last_key)
        web_state.update_system_stats({
            "snapshots_saved": persister.saved,
            "snapshot_failures": persister.failed + persister.abandoned,
        })
    return publish


def build_context(
    config: Dict[str, Any],
    loop: Optional[ControlLoop] = None,
    source: Optional[ObservationSource] = None,
    detector: Any = None,
    store: Optional[PersistenceClient] = None,
    environment: Optional[EnvironmentContext] = None,
    web_state: Any = None,
    window: bool = False,
    build_source: bool = True,
) -> RuntimeContext:
    """
    Wire every component.

    Args:
        config: Merged, validated configuration dict.
        loop: Control loop (a fresh ControlLoop by default).
        source: Frame source; built from config['camera'] when omitted and
            build_source is True.
        detector: Detector; built from config['detection'] when omitted.
        store: Persistence client; built from config['storage'] when omitted.
        environment: Environment context; built from config['environment'].
        web_state: SharedState to publish into (None disables publishing).
        window: Show the annotated preview in an OpenCV window.
    """
    cfg = Config.from_dict(config)
    if loop is None:
        loop = ControlLoop()

    if source is None and build_source:
        source = create_source_from_config(config.get("camera", {}) or {})
    if detector is None:
        detector = create_detector(config.get("detection", {}) or {})
    if store is None:
        store = create_store(config)
    if environment is None:
        environment = create_environment(cfg.environment)

    width, height = cfg.camera.resolution
    surface = FrameOverlaySurface(width, height)
    renderer = OverlayRenderer(surface)
    pipeline = DetectionPipeline(detector, loop, renderer=renderer)

    allocator = SequenceAllocator.from_store(store)
    persister = SnapshotPersister(
        store,
        allocator,
        key_width=cfg.storage.key_width,
        queue_size=cfg.storage.write_queue_size,
    )

    scheduler = SnapshotScheduler(
        loop,
        pipeline.current_count,
        environment,
        interval_s=cfg.scheduler.interval_s,
    )
    status_display = StatusDisplay(surface)
    scheduler.add_consumer(persister.submit)
    scheduler.add_consumer(status_display.update)

    preview = PreviewRenderer(
        surface,
        publish=web_state.set_frame if web_state is not None else None,
        window_name="Passenger Monitor" if window or cfg.display.window else None,
        on_quit=loop.stop,
    )

    if web_state is not None:
        web_state.set_config(config)
        pipeline.add_listener(_publish_detection(web_state, pipeline))
        web_state.set_reading(environment.current_reading())
        environment.add_listener(web_state.set_reading)
        scheduler.add_consumer(_publish_snapshot(web_state, persister))

    logging.info(
        f"Components built: detector={type(detector).__name__}, store={type(store).__name__}, "
        f"interval={cfg.scheduler.interval_s}s, sequence starts after {allocator.current}"
    )

    return RuntimeContext(
        config=config,
        loop=loop,
        source=source,
        detector=detector,
        pipeline=pipeline,
        surface=surface,
        renderer=renderer,
        environment=environment,
        store=store,
        allocator=allocator,
        persister=persister,
        scheduler=scheduler,
        status_display=status_display,
        preview=preview,
        web_state=web_state,
    )
