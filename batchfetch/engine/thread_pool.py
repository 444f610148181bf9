"""Thread pools running round partitions and oversized batch chunks."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict


class ThreadPoolManager:
    """Manage the shared round pool and the per-source chunk pools.

    Partitions of a round run on the shared pool while chunks of a split batch
    run on their source's own pool, so a partition never waits on a worker of
    the pool it occupies.
    """

    def __init__(self, default_workers: int = 8, thread_name_prefix: str = "batchfetch") -> None:
        self.default_workers = default_workers
        self.thread_name_prefix = thread_name_prefix
        self._default_executor: ThreadPoolExecutor | None = None
        self._executors: Dict[str, ThreadPoolExecutor] = {}
        self._lock = Lock()
        self._closed = False

    def get(self, source_name: str | None = None, max_workers: int | None = None) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise RuntimeError("ThreadPoolManager has been shut down")
            if source_name is None:
                if self._default_executor is None:
                    self._default_executor = ThreadPoolExecutor(
                        max_workers=self.default_workers, thread_name_prefix=self.thread_name_prefix
                    )
                return self._default_executor
            if source_name not in self._executors:
                workers = max_workers or self.default_workers
                self._executors[source_name] = ThreadPoolExecutor(
                    max_workers=workers, thread_name_prefix=f"{self.thread_name_prefix}-{source_name}"
                )
            return self._executors[source_name]

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            if self._default_executor is not None:
                self._default_executor.shutdown(wait=wait)
                self._default_executor = None
            for executor in self._executors.values():
                executor.shutdown(wait=wait)
            self._executors.clear()
            self._closed = True


__all__ = ["ThreadPoolManager"]
