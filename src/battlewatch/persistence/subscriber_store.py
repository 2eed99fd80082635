"""SQLite-backed subscriber directory.

Subscribers are registered by the onboarding flow with the in-game display
name they want to be alerted for. The monitor only reads registrations and
removes the ones whose chat can no longer be reached.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from ..models import Subscriber
from ..utils import ensure_directory

LOGGER = logging.getLogger(__name__)


def _adapt_datetime(value: datetime) -> str:
    """Convert datetime to ISO format string for SQLite storage."""
    return value.isoformat()


def _convert_datetime(data: bytes) -> datetime:
    """Convert ISO format string from SQLite to datetime."""
    return datetime.fromisoformat(data.decode("utf-8"))


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("TIMESTAMP", _convert_datetime)


class SubscriberStore:
    """Synchronous SQLite store of subscriber registrations.

    Uses one connection per thread (SQLite requirement) and WAL mode, so the
    async ``SubscriberDirectory`` can call it from worker threads. Every
    connection is registered so ``close`` releases all of them, whichever
    thread opened it.

    Example:
        store = SubscriberStore(Path("/data/subscribers.db"))
        store.upsert("123456789", "Alice")
        store.find_by_display_name("Alice")
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._connections: dict[int, sqlite3.Connection] = {}
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        thread_id = threading.get_ident()
        with self._lock:
            connection = self._connections.get(thread_id)
            if connection is None:
                ensure_directory(self._db_path.parent)
                connection = sqlite3.connect(
                    self._db_path,
                    detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
                    check_same_thread=False,
                )
                connection.execute("PRAGMA journal_mode=WAL")
                connection.row_factory = sqlite3.Row
                self._connections[thread_id] = connection
        return connection

    def _init_db(self) -> None:
        conn = self._get_connection()
        conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
        row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        current_version = row["version"] if row else 0
        if current_version < self.SCHEMA_VERSION:
            self._migrate_schema(current_version)

    def _migrate_schema(self, from_version: int) -> None:
        conn = self._get_connection()
        if from_version < 1:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS subscribers (
                    handle TEXT PRIMARY KEY,
                    display_name TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_subscribers_display_name
                ON subscribers(display_name)
            """)
        conn.execute("DELETE FROM schema_version")
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,))
        conn.commit()

    def close(self) -> None:
        """Close every connection opened by any thread."""
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            connection.close()

    @staticmethod
    def _row_to_subscriber(row: sqlite3.Row) -> Subscriber:
        return Subscriber(
            handle=row["handle"],
            display_name=row["display_name"],
            created_at=row["created_at"],
        )

    def upsert(self, handle: str, display_name: str) -> Subscriber:
        """Register ``handle`` for ``display_name``, replacing any previous name.

        The original registration time is kept when the handle already exists.
        """
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO subscribers (handle, display_name, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(handle) DO UPDATE SET display_name = excluded.display_name
            """,
            (handle, display_name, datetime.now(timezone.utc)),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM subscribers WHERE handle = ?", (handle,)).fetchone()
        return self._row_to_subscriber(row)

    def find_by_display_name(self, display_name: str) -> list[Subscriber]:
        conn = self._get_connection()
        cursor = conn.execute(
            "SELECT * FROM subscribers WHERE display_name = ? ORDER BY created_at, handle",
            (display_name,),
        )
        return [self._row_to_subscriber(row) for row in cursor]

    def get(self, handle: str) -> Subscriber | None:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM subscribers WHERE handle = ?", (handle,)).fetchone()
        return self._row_to_subscriber(row) if row else None

    def delete(self, handle: str) -> bool:
        """Remove a registration. Returns True if a row was deleted."""
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM subscribers WHERE handle = ?", (handle,))
        conn.commit()
        return cursor.rowcount > 0

    def list_all(self) -> list[Subscriber]:
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM subscribers ORDER BY display_name, handle")
        return [self._row_to_subscriber(row) for row in cursor]


class SubscriberDirectory:
    """Async facade over ``SubscriberStore`` used by the notification pipeline."""

    def __init__(self, store: SubscriberStore) -> None:
        self._store = store

    @classmethod
    def open(cls, db_path: Path) -> SubscriberDirectory:
        return cls(SubscriberStore(db_path))

    async def find_by_display_name(self, display_name: str) -> list[Subscriber]:
        return await asyncio.to_thread(self._store.find_by_display_name, display_name)

    async def delete(self, handle: str) -> bool:
        removed = await asyncio.to_thread(self._store.delete, handle)
        if removed:
            LOGGER.info("Removed subscriber %s from the directory", handle)
        return removed

    async def upsert(self, handle: str, display_name: str) -> Subscriber:
        return await asyncio.to_thread(self._store.upsert, handle, display_name)

    def close(self) -> None:
        self._store.close()
