"""Record store: a thin wrapper around the embedded SQLite database."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Sequence, Union

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

# Each entry upgrades the schema by one version; index + 1 is the resulting
# PRAGMA user_version. Append new steps, never edit released ones.
MIGRATIONS: Sequence[str] = (
    """
    CREATE TABLE IF NOT EXISTS expenses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        amount TEXT NOT NULL,
        category TEXT NOT NULL,
        date TEXT NOT NULL
    )
    """,
)

SCHEMA_VERSION = len(MIGRATIONS)


class RecordStore:
    """Explicit connection object shared by the repository and its workers.

    Statements are serialised through a re-entrant lock so the connection can
    be used from a worker thread while the UI thread owns the store.
    """

    def __init__(self, connection: sqlite3.Connection, path: str = MEMORY) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._closed = False
        self._path = path

    @classmethod
    def open(cls, path: Union[str, Path] = MEMORY) -> "RecordStore":
        target = str(path)
        try:
            if target != MEMORY:
                Path(target).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Unable to create directory for {target}") from exc
        try:
            connection = sqlite3.connect(target, check_same_thread=False, isolation_level=None)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to open database at {target}") from exc
        store = cls(connection, target)
        try:
            store.migrate()
        except PersistenceError:
            store.close()
            raise
        logger.debug("Opened record store %s (schema version %d)", target, store.schema_version)
        return store

    @property
    def path(self) -> str:
        return self._path

    @property
    def schema_version(self) -> int:
        rows = self.query("PRAGMA user_version")
        return int(rows[0][0])

    def migrate(self) -> None:
        """Bring the schema up to SCHEMA_VERSION without discarding data."""
        current = self.schema_version
        if current > SCHEMA_VERSION:
            raise PersistenceError(
                f"Database schema version {current} is newer than supported version {SCHEMA_VERSION}"
            )
        for version in range(current, SCHEMA_VERSION):
            with self.transaction() as cursor:
                cursor.execute(MIGRATIONS[version])
                # PRAGMA does not accept bound parameters.
                cursor.execute(f"PRAGMA user_version = {version + 1}")
            logger.debug("Applied schema migration %d", version + 1)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run statements atomically; commit on success, roll back on error."""
        with self._lock:
            self._ensure_open()
            cursor = self._connection.cursor()
            try:
                cursor.execute("BEGIN")
                yield cursor
                self._connection.commit()
            except sqlite3.Error as exc:
                self._rollback()
                raise PersistenceError("Database transaction failed") from exc
            except BaseException:
                self._rollback()
                raise
            finally:
                cursor.close()

    def query(self, sql: str, params: Sequence[object] = ()) -> List[sqlite3.Row]:
        with self._lock:
            self._ensure_open()
            try:
                return self._connection.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError("Database query failed") from exc

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._connection.close()
        logger.debug("Closed record store %s", self._path)

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise PersistenceError("Record store is closed")

    def _rollback(self) -> None:
        try:
            self._connection.rollback()
        except sqlite3.Error:
            logger.exception("Rollback failed")
