"""
Sequence allocation for snapshot record keys.

The counter is seeded once from the highest index already in the store and
only ever moves forward. A failed write does not give its number back:
gaps are acceptable, duplicate keys are not.
"""

from __future__ import annotations

import logging
import threading

from common.exceptions import StoreError
from .base import PersistenceClient

DEFAULT_KEY_WIDTH = 3


def format_document_id(index: int, width: int = DEFAULT_KEY_WIDTH) -> str:
    """
    Format a sequence index as a record key.

    Zero-padded to width digits; indexes with more digits use their natural
    form (width=3: 1 -> "001", 42 -> "042", 999 -> "999", 1000 -> "1000").
    """
    if index < 0:
        raise ValueError("index must be non-negative")
    if width < 1:
        raise ValueError("width must be at least 1")
    return f"{index:0{width}d}"


class SequenceAllocator:
    """
    Strictly increasing, gap-tolerant counter.

    Example:
        allocator = SequenceAllocator.from_store(store)
        key = format_document_id(allocator.allocate())
    """

    def __init__(self, initial: int = 0):
        if initial < 0:
            raise ValueError("initial value must be non-negative")
        self._value = int(initial)
        self._seeded = False
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        """The most recently allocated value (or the seed)."""
        with self._lock:
            return self._value

    def seed(self, value: int) -> None:
        """Set the starting value. Only allowed once, before any allocation."""
        with self._lock:
            if self._seeded:
                raise RuntimeError("SequenceAllocator already seeded")
            if value < 0:
                raise ValueError("seed must be non-negative")
            self._value = int(value)
            self._seeded = True

    def allocate(self) -> int:
        """Return previous + 1; the increment is committed before returning."""
        with self._lock:
            self._value += 1
            self._seeded = True
            return self._value

    @classmethod
    def from_store(cls, store: PersistenceClient) -> "SequenceAllocator":
        """Seed from the highest index the store already holds, falling back to 0 on failure."""
        allocator = cls()
        try:
            count = int(store.initial_count())
        except StoreError as e:
            logging.warning(f"Could not read existing snapshot index, starting sequence at 0: {e}")
            count = 0
        allocator.seed(count)
        logging.info(f"Snapshot sequence starts after {count}")
        return allocator
