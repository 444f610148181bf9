"""External cache persisted in SQLite so results survive across executions."""

from __future__ import annotations

import pickle
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Mapping, Tuple

from ..infra.storage import SQLiteManager
from .cache import DataSourceCache
from .source import CacheKey

_PICKLE_PROTOCOL = 4

_SCHEMA = """
CREATE TABLE IF NOT EXISTS fetch_cache (
    source_name TEXT NOT NULL,
    identity BLOB NOT NULL,
    payload BLOB NOT NULL,
    stored_at TEXT,
    PRIMARY KEY (source_name, identity)
);
"""


class SQLiteCache(DataSourceCache):
    """Cache whose entries are pickled into a ``fetch_cache`` table.

    Identities are stored pickled too, so they must be picklable and equal
    identities must pickle to the same bytes (true for str, int and tuples of them).
    """

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self._lock = Lock()
        self._conn = self.manager.connect(db_path, _SCHEMA)

    @staticmethod
    def _identity_blob(key: CacheKey) -> bytes:
        return pickle.dumps(key[1], protocol=_PICKLE_PROTOCOL)

    def get(self, key: CacheKey, default: Any = None) -> Any:
        with self._lock:
            row = self._conn.execute(
                "SELECT payload FROM fetch_cache WHERE source_name = ? AND identity = ?",
                (key[0], self._identity_blob(key)),
            ).fetchone()
        if row is None:
            return default
        return pickle.loads(row["payload"])

    def put(self, key: CacheKey, value: Any) -> None:
        self.update([(key, value)])

    def update(self, entries: Mapping[CacheKey, Any] | Iterable[Tuple[CacheKey, Any]]) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        rows = [
            (key[0], self._identity_blob(key), pickle.dumps(value, protocol=_PICKLE_PROTOCOL))
            for key, value in items
        ]
        if not rows:
            return
        with self._lock:
            self._conn.executemany(
                "INSERT OR REPLACE INTO fetch_cache(source_name, identity, payload, stored_at)"
                " VALUES (?, ?, ?, datetime('now'))",
                rows,
            )
            self._conn.commit()

    def contains(self, key: CacheKey) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM fetch_cache WHERE source_name = ? AND identity = ?",
                (key[0], self._identity_blob(key)),
            ).fetchone()
        return row is not None

    def snapshot(self) -> Dict[CacheKey, Any]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT source_name, identity, payload FROM fetch_cache"
            ).fetchall()
        return {
            (row["source_name"], pickle.loads(row["identity"])): pickle.loads(row["payload"])
            for row in rows
        }

    def __len__(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT count(*) FROM fetch_cache").fetchone()[0]

    def reset(self) -> None:
        self.manager.reset(self.db_path)
        self._conn = self.manager.connect(self.db_path, _SCHEMA)


__all__ = ["SQLiteCache"]
