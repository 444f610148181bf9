"""Result caches keyed by ``(source name, identity)``."""

from __future__ import annotations

from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Dict, Iterable, Mapping, Tuple

from .source import CacheKey, DataSource, Identity

_MISSING = object()


def cache_key(source: DataSource | str, identity: Identity) -> CacheKey:
    name = source if isinstance(source, str) else source.name
    return (name, identity)


class DataSourceCache(ABC):
    """Cache contract consulted by the executor before every round.

    Entries are only ever added during an execution; implementations must be
    safe to call from the thread pool running a round's partitions.
    """

    @abstractmethod
    def get(self, key: CacheKey, default: Any = None) -> Any:
        """Return the cached value for ``key`` or ``default``."""

    @abstractmethod
    def put(self, key: CacheKey, value: Any) -> None:
        """Store a resolved value."""

    @abstractmethod
    def contains(self, key: CacheKey) -> bool:
        """Return whether ``key`` has been resolved."""

    @abstractmethod
    def snapshot(self) -> Dict[CacheKey, Any]:
        """Return a plain copy of every cached entry."""

    def update(self, entries: Mapping[CacheKey, Any] | Iterable[Tuple[CacheKey, Any]]) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        for key, value in items:
            self.put(key, value)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, tuple) and self.contains(key)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self.snapshot())


class InMemoryCache(DataSourceCache):
    """Lock-guarded dictionary cache living as long as its owner wants."""

    def __init__(self, entries: Mapping[CacheKey, Any] | None = None) -> None:
        self._lock = Lock()
        self._entries: Dict[CacheKey, Any] = dict(entries or {})

    @classmethod
    def from_results(cls, results: Mapping[CacheKey, Any]) -> "InMemoryCache":
        """Build a cache pre-seeded with already resolved values."""

        return cls(results)

    def get(self, key: CacheKey, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def put(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def update(self, entries: Mapping[CacheKey, Any] | Iterable[Tuple[CacheKey, Any]]) -> None:
        items = dict(entries)
        with self._lock:
            self._entries.update(items)

    def contains(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def snapshot(self) -> Dict[CacheKey, Any]:
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"InMemoryCache({self.snapshot()!r})"


def lookup_cached(cache: DataSourceCache, key: CacheKey) -> Any:
    """Return the cached value or the module sentinel when absent."""

    return cache.get(key, _MISSING)


def is_missing(value: Any) -> bool:
    return value is _MISSING


__all__ = [
    "DataSourceCache",
    "InMemoryCache",
    "cache_key",
    "is_missing",
    "lookup_cached",
]
