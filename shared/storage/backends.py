"""Durable flat key-value backends for the event store.

Two interchangeable backends are provided:

- SqliteBackend   → one row per key, committed per operation (default)
- JsonFileBackend → whole mapping in one JSON file, rewritten atomically

Both expose the same contract:

    get(key) -> str | None
    put(key, value)
    delete(key) -> bool
    keys() -> list[str]
    close()

Values are opaque strings. Backends raise their native errors
(sqlite3.Error, OSError, ValueError); the EventStore maps them to
StoreFailure.
"""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

from shared.logging.logger import get_logger

log = get_logger("storage.backends")


class SqliteBackend:
    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        log.info(f"SQLite event backend ready: {self._db_path}")

    # ------------------------------------------------------------------
    # SQLite setup
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM events WHERE key = ?",
                (key,),
            ).fetchone()
        return row["value"] if row else None

    def put(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO events (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )

    def delete(self, key: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM events WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def keys(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key FROM events").fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        # Connections are per-operation; nothing to release.
        return None


class JsonFileBackend:
    """
    Single-file JSON backend.

    Every mutation rewrites the file through a temp file + fsync + replace
    so a crash never leaves a partially written mapping behind.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        log.info(f"JSON event backend ready: {self._path}")

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        payload = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"{self._path.name}: root JSON value must be an object")
        return payload

    def _write_atomic(self, payload: Dict[str, str]) -> None:
        serialized = json.dumps(payload, indent=2)

        with tempfile.NamedTemporaryFile(
            "w", dir=self._path.parent, delete=False, encoding="utf-8"
        ) as tmp:
            tmp.write(serialized)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        temp_path.replace(self._path)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            payload = self._read()
            payload[key] = value
            self._write_atomic(payload)

    def delete(self, key: str) -> bool:
        with self._lock:
            payload = self._read()
            if key not in payload:
                return False
            del payload[key]
            self._write_atomic(payload)
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._read().keys())

    def close(self) -> None:
        return None
