"""Local-first store: four namespaced JSON records in SQLite.

Writes are synchronous and committed immediately so a crash loses at
most an in-flight remote write. A missing or unreadable record reads as
the caller's default.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger("adagio.local_store")

SETTINGS_KEY = "settings"
LOG_KEY = "log"
ACTIVE_SESSIONS_KEY = "activeSessions"
RECENT_PROJECTS_KEY = "recentProjects"

NAMESPACES = (SETTINGS_KEY, LOG_KEY, ACTIVE_SESSIONS_KEY, RECENT_PROJECTS_KEY)


class LocalStore:
    def __init__(self, db_path: Path | str = ":memory:"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._init_schema()

    def _init_schema(self) -> None:
        cursor = self._conn.cursor()
        if self.db_path != ":memory:":
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS records (
                namespace TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def read(self, namespace: str, default: Any = None) -> Any:
        self._check(namespace)
        row = self._conn.execute(
            "SELECT payload FROM records WHERE namespace = ?", (namespace,)
        ).fetchone()
        if row is None:
            return default
        try:
            value = json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning("Unreadable local record '%s', using default: %s", namespace, e)
            return default
        return default if value is None else value

    def write(self, namespace: str, value: Any) -> None:
        self._check(namespace)
        self._conn.execute(
            """
            INSERT INTO records (namespace, payload, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(namespace) DO UPDATE SET
                payload = excluded.payload,
                updated_at = excluded.updated_at
            """,
            (namespace, json.dumps(value), datetime.now().isoformat()),
        )
        self._conn.commit()

    def write_many(self, values: dict[str, Any]) -> None:
        for namespace, value in values.items():
            self.write(namespace, value)

    def delete(self, namespace: str) -> None:
        self._check(namespace)
        self._conn.execute("DELETE FROM records WHERE namespace = ?", (namespace,))
        self._conn.commit()

    def wipe(self) -> None:
        self._conn.execute("DELETE FROM records")
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _check(namespace: str) -> None:
        if namespace not in NAMESPACES:
            raise ValueError(f"Unknown local namespace: {namespace}")
