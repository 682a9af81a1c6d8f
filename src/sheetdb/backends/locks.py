"""Named locks for the bundled backing stores.

WHY
───
``Collection.batch()`` rewrites a whole sheet in one range assignment. Two
such rewrites interleaving would silently drop one of them, so the rewrite
runs under a named lock with a bounded wait. The lock has to be shared by
everyone who can write the same document:

- :class:`ThreadLock` — process-local, for the in-memory store
- :class:`SqliteLock` — cross-process, a lock row in a SQLite file next to a
  workbook; expires on its own if the holder crashes

ARCHITECTURE
────────────
::

    lock = document.lock("batch:Task")
      ├── .try_acquire(timeout)  ─ block up to timeout, True when held
      └── .release()             ─ explicit unlock (always in ``finally``)

Example::

    if not lock.try_acquire(10.0):
        raise LockTimeoutError(...)
    try:
        sheet.write_range(2, 1, block)
    finally:
        lock.release()
"""

from __future__ import annotations

import sqlite3
import threading
import time
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

from sheetdb.core.errors import StorageError
from sheetdb.core.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class ThreadLock:
    """Process-local named lock (non-reentrant)."""

    def __init__(self, name: str):
        self._name = name
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def try_acquire(self, timeout: float) -> bool:
        if timeout <= 0:
            return self._lock.acquire(blocking=False)
        return self._lock.acquire(timeout=timeout)

    def release(self) -> None:
        self._lock.release()


class SqliteLock:
    """Cross-process named lock backed by a row in a SQLite database.

    A lock row carries an expiry so that a crashed holder does not block
    everyone forever. Acquisition polls until the timeout elapses.

    Parameters:
        path: SQLite database file holding the lock table.
        name: Lock name (one row per held lock).
        expiry_seconds: Age after which a held lock is considered abandoned.
        poll_interval: Seconds between acquisition attempts.
    """

    _DDL = """
        CREATE TABLE IF NOT EXISTS sheetdb_locks (
            lock_key    TEXT PRIMARY KEY,
            owner       TEXT NOT NULL,
            acquired_at TEXT NOT NULL,
            expires_at  TEXT NOT NULL
        )
    """

    def __init__(
        self,
        path: str | Path,
        name: str,
        *,
        expiry_seconds: int = 300,
        poll_interval: float = 0.1,
    ):
        self.path = Path(path)
        self._name = name
        self.owner = uuid.uuid4().hex
        self.expiry_seconds = expiry_seconds
        self.poll_interval = poll_interval

    @property
    def name(self) -> str:
        return self._name

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=5.0)
        conn.execute(self._DDL)
        return conn

    def _attempt(self) -> bool:
        now = utcnow()
        expires_at = now + timedelta(seconds=self.expiry_seconds)
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "DELETE FROM sheetdb_locks WHERE lock_key = ? AND expires_at < ?",
                    (self._name, now.isoformat()),
                )
                try:
                    conn.execute(
                        "INSERT INTO sheetdb_locks (lock_key, owner, acquired_at, expires_at)"
                        " VALUES (?, ?, ?, ?)",
                        (self._name, self.owner, now.isoformat(), expires_at.isoformat()),
                    )
                    return True
                except sqlite3.IntegrityError:
                    # Already held; extend if the holder is us
                    cursor = conn.execute(
                        "UPDATE sheetdb_locks SET expires_at = ?"
                        " WHERE lock_key = ? AND owner = ?",
                        (expires_at.isoformat(), self._name, self.owner),
                    )
                    return cursor.rowcount > 0
        finally:
            conn.close()

    def try_acquire(self, timeout: float) -> bool:
        deadline = time.monotonic() + max(timeout, 0.0)
        try:
            while True:
                if self._attempt():
                    logger.debug("lock_acquired", lock=self._name, owner=self.owner)
                    return True
                if time.monotonic() >= deadline:
                    return False
                time.sleep(min(self.poll_interval, max(deadline - time.monotonic(), 0.0)))
        except sqlite3.Error as exc:
            raise StorageError(
                f"Lock database {self.path} unavailable", cause=exc
            ).with_context(lock=self._name) from exc

    def release(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "DELETE FROM sheetdb_locks WHERE lock_key = ? AND owner = ?",
                    (self._name, self.owner),
                )
        except sqlite3.Error as exc:
            raise StorageError(
                f"Lock database {self.path} unavailable", cause=exc
            ).with_context(lock=self._name) from exc
        finally:
            conn.close()

    def holder(self) -> str | None:
        """Owner of the unexpired lock row, if any."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT owner, expires_at FROM sheetdb_locks WHERE lock_key = ?",
                (self._name,),
            ).fetchone()
        finally:
            conn.close()
        if row is None or datetime.fromisoformat(row[1]) < utcnow():
            return None
        return row[0]


__all__ = ["ThreadLock", "SqliteLock", "utcnow"]
