"""Incident store — durable latch state keyed by probe slug."""

from __future__ import annotations

import abc
import asyncio
import sqlite3
import threading
from pathlib import Path

import structlog

from otto.core.exceptions import StoreError
from otto.core.types import LatchState

logger = structlog.get_logger(__name__)

_SCHEMA = "CREATE TABLE IF NOT EXISTS incidents (slug TEXT PRIMARY KEY, state BLOB NOT NULL)"

_BY_VALUE: dict[bytes, LatchState] = {state.value: state for state in LatchState}


class IncidentStore(abc.ABC):
    """Key→latch mapping shared by every probe loop.

    A missing key means no incident has been latched for that slug.
    """

    @abc.abstractmethod
    async def get(self, slug: str) -> LatchState | None:
        """Return the stored latch state, or None if the slug is unknown."""

    @abc.abstractmethod
    async def set(self, slug: str, state: LatchState) -> None:
        """Persist the latch state for *slug*."""

    @abc.abstractmethod
    async def flush(self) -> None:
        """Push buffered writes to durable storage (best effort)."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Flush and release the underlying storage."""


class SqliteIncidentStore(IncidentStore):
    """Incident store backed by a single-table SQLite database.

    Blocking sqlite calls run in a worker thread; a lock serialises access to
    the shared connection so any number of probe loops may call concurrently.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        """Create the database file and schema if needed."""
        with self._lock:
            if self._conn is not None:
                return
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self._path), check_same_thread=False)
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute(_SCHEMA)
                conn.commit()
            except (OSError, sqlite3.Error) as exc:
                raise StoreError(f"failed opening incident store {self._path}: {exc}") from exc
            self._conn = conn
        logger.info("incident_store_opened", path=str(self._path))

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("incident store is not open")
        return self._conn

    # ── Blocking helpers (run in a worker thread) ───────────────

    def _get_sync(self, slug: str) -> LatchState | None:
        with self._lock:
            try:
                row = self._connection().execute(
                    "SELECT state FROM incidents WHERE slug = ?", (slug,)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreError(f"failed reading {slug}: {exc}") from exc
        if row is None:
            return None
        return _BY_VALUE.get(bytes(row[0]))

    def _set_sync(self, slug: str, state: LatchState) -> None:
        with self._lock:
            conn = self._connection()
            try:
                conn.execute(
                    "INSERT INTO incidents (slug, state) VALUES (?, ?) "
                    "ON CONFLICT(slug) DO UPDATE SET state = excluded.state",
                    (slug, state.value),
                )
                conn.commit()
            except sqlite3.Error as exc:
                raise StoreError(f"failed writing {slug}: {exc}") from exc

    def _flush_sync(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.execute("PRAGMA wal_checkpoint(PASSIVE)")
            except sqlite3.Error as exc:
                raise StoreError(f"failed flushing incident store: {exc}") from exc

    def _close_sync(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
                self._conn.close()
            except sqlite3.Error as exc:
                raise StoreError(f"failed closing incident store: {exc}") from exc
            finally:
                self._conn = None

    # ── Async contract ──────────────────────────────────────────

    async def get(self, slug: str) -> LatchState | None:
        return await asyncio.to_thread(self._get_sync, slug)

    async def set(self, slug: str, state: LatchState) -> None:
        await asyncio.to_thread(self._set_sync, slug, state)

    async def flush(self) -> None:
        await asyncio.to_thread(self._flush_sync)

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)
        logger.info("incident_store_closed", path=str(self._path))
