"""
SQLite adapter for KeyValueStorage.

Use ":memory:" for tests, a file path for production.
"""

import sqlite3

from booking_client.domain.cache import KeyValueStorage

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
"""


class SqliteStorage(KeyValueStorage):

    def __init__(self, db_path: str = "booking_cache.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

    def get_item(self, key: str) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if not row:
            return None
        return row["value"]

    def set_item(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
            (key, value),
        )
        self._conn.commit()

    def remove_item(self, key: str) -> None:
        self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self._conn.commit()

    def keys(self) -> list[str]:
        rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [r["key"] for r in rows]

    def close(self) -> None:
        self._conn.close()
