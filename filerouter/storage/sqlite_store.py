"""SQLite-backed key-value store.

Uses WAL mode so readers don't block the single writer; all statements go
through one connection guarded by a lock.
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterator, Optional

from loguru import logger

from filerouter.errors import StoreUnavailableError

from .base import KeyValueStore


class SQLiteKeyValueStore(KeyValueStore):
    """Durable key-value store in a single SQLite file."""

    def __init__(self, db_path: Path, table: str = "kv"):
        """
        Initialize the store.

        Args:
            db_path: Database file (created with its parent directory if missing)
            table: Table name, lets several logical stores share one file
        """
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = Path(db_path).expanduser()
        self.table = table
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection with WAL mode."""
        if self._conn is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
                conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {self.table} ("
                    " key TEXT PRIMARY KEY,"
                    " value TEXT NOT NULL"
                    ")"
                )
                conn.commit()
            except (sqlite3.Error, OSError) as e:
                raise StoreUnavailableError(f"Cannot open {self.db_path}: {e}") from e
            self._conn = conn
            logger.debug(f"SQLite store ready: {self.db_path} [{self.table}]")
        return self._conn

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            try:
                row = self._get_connection().execute(
                    f"SELECT value FROM {self.table} WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Read failed for {key!r}: {e}") from e
        return json.loads(row[0]) if row else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        raw = json.dumps(value)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    f"INSERT INTO {self.table} (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, raw),
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreUnavailableError(f"Write failed for {key!r}: {e}") from e

    def delete(self, key: str) -> bool:
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreUnavailableError(f"Delete failed for {key!r}: {e}") from e
        return cursor.rowcount > 0

    def iter_prefix(self, prefix: str) -> Iterator[tuple[str, dict[str, Any]]]:
        # LIKE would need escaping; a range scan on the primary key is exact
        upper = prefix + "\U0010ffff"
        with self._lock:
            try:
                rows = self._get_connection().execute(
                    f"SELECT key, value FROM {self.table} WHERE key >= ? AND key < ? ORDER BY key",
                    (prefix, upper),
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Scan failed for prefix {prefix!r}: {e}") from e
        for key, raw in rows:
            yield key, json.loads(raw)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug(f"SQLite store closed: {self.db_path}")
