"""
Snapshot persister: the tick consumer that writes snapshots to the store.

The sequence index is allocated on the caller's (control loop) thread, then
both store writes run on a background writer thread so the tick cadence never
waits on store I/O. Failed writes are logged and never retried; the index they
consumed is not reused.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Tuple

from common.exceptions import StoreError
from models.snapshot import Snapshot
from .base import PersistenceClient
from .sequence import DEFAULT_KEY_WIDTH, SequenceAllocator, format_document_id

DEFAULT_QUEUE_SIZE = 1000


class SnapshotPersister:
    """Fire-and-forget persistence of tick snapshots."""

    def __init__(
        self,
        client: PersistenceClient,
        allocator: SequenceAllocator,
        key_width: int = DEFAULT_KEY_WIDTH,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self.client = client
        self.allocator = allocator
        self.key_width = key_width
        self._queue: "queue.Queue[Optional[Tuple[str, Snapshot]]]" = queue.Queue(maxsize=queue_size)
        self._thread: Optional[threading.Thread] = None
        self._idle = threading.Condition()
        self._in_flight = 0

        self.saved = 0
        self.failed = 0
        self.abandoned = 0
        self.last_key: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._thread = threading.Thread(target=self._write_loop, name="SnapshotWriter", daemon=True)
        self._thread.start()
        logging.info("Snapshot writer started")

    def submit(self, snapshot: Snapshot) -> str:
        """
        Allocate the next key for snapshot and queue both writes.

        Returns:
            The record key assigned to this snapshot.
        """
        key = format_document_id(self.allocator.allocate(), self.key_width)
        self.last_key = key
        with self._idle:
            self._in_flight += 1
        try:
            self._queue.put_nowait((key, snapshot))
        except queue.Full:
            self._done()
            self.abandoned += 1
            logging.warning(f"Snapshot write queue full, abandoning record {key}")
        return key

    def _done(self) -> None:
        with self._idle:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.notify_all()

    def _write(self, key: str, snapshot: Snapshot) -> None:
        try:
            self.client.save(key, snapshot)
            self.saved += 1
            logging.debug(f"Saved snapshot {key}")
        except StoreError as e:
            self.failed += 1
            logging.warning(f"Snapshot write failed: {e}")
        except Exception as e:
            self.failed += 1
            logging.error(f"Unexpected error saving snapshot {key}: {e}")

        try:
            self.client.upsert_latest(snapshot)
        except StoreError as e:
            logging.warning(f"Snapshot write failed: {e}")
        except Exception as e:
            logging.error(f"Unexpected error updating latest snapshot: {e}")

    def _write_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            key, snapshot = item
            try:
                self._write(key, snapshot)
            finally:
                self._done()
        logging.info("Snapshot writer stopped")

    def flush(self, timeout: float = 5.0) -> bool:
        """
        Wait for every queued write to finish.

        Returns:
            True if the queue drained within timeout.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    def stop(self, timeout: float = 5.0) -> None:
        """Drain pending writes, then stop the writer thread. Idempotent."""
        if self._thread is None:
            return
        if not self.flush(timeout):
            logging.warning("Snapshot writer did not drain before shutdown")
        try:
            self._queue.put(None, timeout=timeout)
        except queue.Full:
            logging.warning("Snapshot writer queue still full, leaving thread to exit with the process")
        self._thread.join(timeout=timeout)
        self._thread = None
