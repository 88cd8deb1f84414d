"""
Capacity-one frame inbox.

The capture thread puts, the detection worker takes. A put never blocks:
a frame still waiting when a newer one arrives is overwritten and counted
as dropped, so detection always works on the freshest frame.
"""

from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LatestSlot(Generic[T]):
    """Single-slot mailbox with most-recent-wins semantics."""

    def __init__(self):
        self._item: Optional[T] = None
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    def put(self, item: T) -> bool:
        """
        Store item, replacing any unconsumed one.

        Returns:
            True if an older item was overwritten.
        """
        with self._cond:
            overwritten = self._item is not None
            if overwritten:
                self.dropped += 1
            self._item = item
            self._cond.notify()
            return overwritten

    def take(self, timeout: Optional[float] = None) -> Optional[T]:
        """Wait for an item and remove it. Returns None on timeout or close."""
        with self._cond:
            if self._item is None and not self._closed:
                self._cond.wait_for(lambda: self._item is not None or self._closed, timeout=timeout)
            item, self._item = self._item, None
            return item

    def peek(self) -> Optional[T]:
        """Return the current item without consuming it."""
        with self._cond:
            return self._item

    def close(self) -> None:
        """Wake any waiting taker; later takes return immediately."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def reopen(self) -> None:
        with self._cond:
            self._closed = False

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._item is not None
