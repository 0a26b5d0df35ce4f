"""Durable key-value storage for the license cache snapshot.

The cache persists two JSON blobs through a small ``get``/``update`` handle.
``SqliteStateStore`` keeps them in a local SQLite database; ``MemoryStateStore``
keeps them in a dict for tests and throwaway runs.
"""

import contextlib
import json
import sqlite3
from pathlib import Path
from typing import Any, Optional

DEFAULT_STATE_PATH = Path.home() / ".cache" / "license-lens" / "state.db"


class MemoryStateStore:
    """In-process state store.

    Values are round-tripped through JSON on write so that callers observe
    the same serialization behavior as the SQLite store.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def update(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


class SqliteStateStore:
    """SQLite-backed state store.

    Each key maps to one JSON document in a single ``state`` table. Writes
    replace the whole document.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize the store, creating the database if needed.

        Args:
            db_path: Path to SQLite database. If None, uses
                ~/.cache/license-lens/state.db.
        """
        if db_path is None:
            db_path = DEFAULT_STATE_PATH
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._init_database()

    def __enter__(self) -> "SqliteStateStore":
        """Enter context manager, keeping connection open."""
        self._conn = sqlite3.connect(self.db_path)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager, closing connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @contextlib.contextmanager
    def _connect(self):
        """Get a database connection.

        Reuses the connection opened by ``__enter__`` when there is one,
        otherwise opens a short-lived connection.
        """
        if self._conn:
            yield self._conn
        else:
            conn = sqlite3.connect(self.db_path)
            try:
                yield conn
            finally:
                conn.close()

    def _init_database(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded document stored under ``key``.

        Raises:
            json.JSONDecodeError: If the stored document is corrupt.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM state WHERE key = ?", (key,)
            ).fetchone()

        if row is None:
            return default
        return json.loads(row[0])

    def update(self, key: str, value: Any) -> None:
        """Replace the document stored under ``key``."""
        payload = json.dumps(value)
        with self._connect() as conn:
            conn.execute(
                "REPLACE INTO state (key, value) VALUES (?, ?)",
                (key, payload),
            )
            conn.commit()

    def size_bytes(self) -> int:
        """Return the database file size in bytes."""
        return self.db_path.stat().st_size if self.db_path.exists() else 0
