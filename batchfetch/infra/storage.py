"""Shared SQLite connections for stores persisted on disk."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict, Set


class SQLiteManager:
    """Hand out one connection per database file to every store that uses it.

    Stores own their tables: each passes its DDL to ``connect``, which runs a
    given script once per open connection. After ``reset`` the file is gone, so
    the next ``connect`` recreates it and applies the scripts again.
    """

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._applied: Dict[Path, Set[str]] = {}
        self._lock = Lock()

    def connect(self, path: Path, schema: str | None = None) -> sqlite3.Connection:
        with self._lock:
            conn = self._connections.get(path)
            if conn is None:
                path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._connections[path] = conn
                self._applied[path] = set()
            if schema and schema not in self._applied[path]:
                conn.executescript(schema)
                self._applied[path].add(schema)
            return conn

    def is_open(self, path: Path) -> bool:
        with self._lock:
            return path in self._connections

    def reset(self, path: Path) -> None:
        """Close the connection to ``path`` and delete the database file."""

        with self._lock:
            conn = self._connections.pop(path, None)
            self._applied.pop(path, None)
            if conn is not None:
                conn.close()
        path.unlink(missing_ok=True)

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()
            self._applied.clear()


__all__ = ["SQLiteManager"]
