"""
Persistence client interface.

A store keeps one record per snapshot under a unique key, plus a single
"latest" record overwritten on every tick. All methods raise
common.exceptions.StoreError on failure; callers log and move on.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from models.snapshot import Snapshot


@runtime_checkable
class PersistenceClient(Protocol):
    def save(self, key: str, snapshot: Snapshot) -> None:
        """Store snapshot under key. Must not overwrite an existing key."""
        ...

    def upsert_latest(self, snapshot: Snapshot) -> None:
        """Replace the most-recent-state record."""
        ...

    def initial_count(self) -> int:
        """
        Highest sequence index already stored (called once at startup).

        Never less than the number of records, so gaps left by failed saves
        are skipped on restart.
        """
        ...
