"""SQLite key/value store for the persisted ledgers."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

HISTORY_KEY = "timetrack.history"
LANGUAGE_HISTORY_KEY = "timetrack.languageHistory"
FRAMEWORK_HISTORY_KEY = "timetrack.frameworkHistory"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS ledger_state (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )


def load_value(conn: sqlite3.Connection, key: str) -> Optional[Any]:
    """Return the decoded value stored under ``key``, or None when absent or unreadable."""
    row = conn.execute(
        "SELECT value FROM ledger_state WHERE key = ?", (key,)
    ).fetchone()
    if row is None:
        return None
    try:
        return json.loads(row["value"])
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed value stored under %r.", key)
        return None


def save_value(conn: sqlite3.Connection, key: str, value: Any) -> None:
    conn.execute(
        """
        INSERT INTO ledger_state (key, value, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET
            value = excluded.value,
            updated_at = excluded.updated_at
        """,
        (
            key,
            json.dumps(value, separators=(",", ":")),
            datetime.now(timezone.utc).strftime(DATETIME_FMT),
        ),
    )


class StateStore:
    """Durable ``load``/``save`` gateway backed by one SQLite file.

    ``save`` never raises on database errors: a failed write is logged and
    reported as ``False`` so the caller can simply try again on its next flush.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = open_database(
            self.path, check_same_thread=False
        )

    def load(self, key: str) -> Optional[Any]:
        if self._conn is None:
            return None
        return load_value(self._conn, key)

    def save(self, key: str, value: Any) -> bool:
        if self._conn is None:
            logger.warning("Store is closed; dropping write to %r.", key)
            return False
        try:
            save_value(self._conn, key, value)
        except sqlite3.Error:
            logger.exception("Failed to persist %r; will retry on next flush.", key)
            return False
        return True

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
