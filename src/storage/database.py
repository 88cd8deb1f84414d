"""
SQLite snapshot store.

Local durable store for snapshot records. Schema versioning ensures a clean
schema when the layout changes:
- schema_meta: tracks schema version
- snapshots: one row per tick, keyed by the sequence-derived document id
- latest_snapshot: single row (id = 1) with the most recent record
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from typing import Optional

from common.exceptions import StoreError
from models.snapshot import Snapshot

# Schema version - increment when schema changes
EXPECTED_SCHEMA_VERSION = 1


class SnapshotDatabase:
    """
    SQLite implementation of the PersistenceClient interface.

    Writes arrive from the snapshot writer thread while the web thread
    reads, so one connection is shared behind a lock.
    """

    def __init__(self, local_database_path: str):
        """
        Initialize the database.

        Args:
            local_database_path: Path to the SQLite database file.
        """
        self.local_database_path = local_database_path
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

        # Create directory if it doesn't exist
        db_dir = os.path.dirname(local_database_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        logging.info(f"Database initialized at {local_database_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self.conn is None:
            self.conn = sqlite3.connect(self.local_database_path, check_same_thread=False)
        return self.conn

    def _get_schema_version(self) -> Optional[int]:
        """Get current schema version from database."""
        try:
            cursor = self._get_connection().cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_meta'"
            )
            if cursor.fetchone() is None:
                return None

            cursor.execute("SELECT schema_version FROM schema_meta LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else None
        except sqlite3.Error:
            return None

    def _drop_old_tables(self) -> None:
        cursor = self._get_connection().cursor()
        for table in ("snapshots", "latest_snapshot", "schema_meta"):
            try:
                cursor.execute(f"DROP TABLE IF EXISTS {table}")
                logging.debug(f"Dropped table: {table}")
            except sqlite3.Error as e:
                logging.warning(f"Could not drop table {table}: {e}")
        self._get_connection().commit()

    def _create_schema(self) -> None:
        cursor = self._get_connection().cursor()

        cursor.execute("""
            CREATE TABLE schema_meta (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                schema_version INTEGER NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)

        cursor.execute("""
            CREATE TABLE snapshots (
                doc_id TEXT PRIMARY KEY,
                ts REAL NOT NULL,
                passenger_count INTEGER NOT NULL,
                condition TEXT NOT NULL,
                temperature TEXT NOT NULL,
                recorded_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        cursor.execute("CREATE INDEX idx_snapshots_ts ON snapshots(ts)")

        cursor.execute("""
            CREATE TABLE latest_snapshot (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                ts REAL NOT NULL,
                passenger_count INTEGER NOT NULL,
                condition TEXT NOT NULL,
                temperature TEXT NOT NULL
            )
        """)

        cursor.execute(
            "INSERT INTO schema_meta (id, schema_version) VALUES (1, ?)",
            (EXPECTED_SCHEMA_VERSION,)
        )

        self._get_connection().commit()
        logging.info(f"Created schema version {EXPECTED_SCHEMA_VERSION}")

    def initialize(self) -> None:
        """
        Initialize the database schema.

        If schema_meta is missing or the version doesn't match
        EXPECTED_SCHEMA_VERSION, drops the old tables and creates a fresh schema.
        """
        with self._lock:
            try:
                current_version = self._get_schema_version()

                if current_version != EXPECTED_SCHEMA_VERSION:
                    if current_version is not None:
                        logging.warning(
                            f"Schema version mismatch: found {current_version}, "
                            f"expected {EXPECTED_SCHEMA_VERSION}. Dropping old tables."
                        )
                    else:
                        logging.info("No schema found, creating fresh database.")
                    self._drop_old_tables()
                    self._create_schema()
                else:
                    logging.info(f"Schema version {current_version} is current")

            except sqlite3.Error as e:
                logging.error(f"Database initialization error: {e}")
                raise

    # -------------------------------------------------------------------------
    # PersistenceClient
    # -------------------------------------------------------------------------

    def save(self, key: str, snapshot: Snapshot) -> None:
        """
        Insert a snapshot record.

        Raises:
            StoreError: On any SQLite error, including an existing key.
        """
        with self._lock:
            try:
                conn = self._get_connection()
                conn.execute(
                    """
                    INSERT INTO snapshots (doc_id, ts, passenger_count, condition, temperature)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        key,
                        snapshot.timestamp,
                        snapshot.passenger_count,
                        snapshot.condition,
                        snapshot.temperature,
                    ),
                )
                conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to save snapshot {key}: {e}") from e

    def upsert_latest(self, snapshot: Snapshot) -> None:
        with self._lock:
            try:
                conn = self._get_connection()
                conn.execute(
                    """
                    INSERT INTO latest_snapshot (id, ts, passenger_count, condition, temperature)
                    VALUES (1, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        ts = excluded.ts,
                        passenger_count = excluded.passenger_count,
                        condition = excluded.condition,
                        temperature = excluded.temperature
                    """,
                    (
                        snapshot.timestamp,
                        snapshot.passenger_count,
                        snapshot.condition,
                        snapshot.temperature,
                    ),
                )
                conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to update latest snapshot: {e}") from e

    def initial_count(self) -> int:
        """
        Highest sequence index already used.

        This is the larger of the row count and the biggest numeric key, so a
        gap left by a failed save never hands out an existing key again.
        """
        with self._lock:
            try:
                cursor = self._get_connection().cursor()
                cursor.execute("SELECT COUNT(*), MAX(CAST(doc_id AS INTEGER)) FROM snapshots")
                count, max_index = cursor.fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to count snapshots: {e}") from e
        return max(int(count), int(max_index or 0))

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logging.info("Database connection closed")
