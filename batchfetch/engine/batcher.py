"""Request batcher: one backend call per source per round."""

from __future__ import annotations

import time
from concurrent.futures import Future, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

import structlog

from ..config import BatchExecution, EngineConfig
from .cache import DataSourceCache, cache_key
from .source import DataSource, FetchMany, FetchOne, FetchRequest, Identity, build_request
from .thread_pool import ThreadPoolManager


@dataclass(slots=True)
class Partition:
    """Identities of one source still unresolved at the start of a round."""

    source: DataSource
    identities: Dict[Identity, None] = field(default_factory=dict)

    def add(self, identity: Identity) -> None:
        self.identities.setdefault(identity, None)

    def to_request(self) -> FetchRequest:
        return build_request(self.source, self.identities)


@dataclass(slots=True)
class PartitionResult:
    request: FetchRequest
    found: Dict[Identity, Any]
    missing: List[Identity]
    elapsed: float
    backend_calls: int = 0
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None or bool(self.missing)


def _chunks(identities: tuple[Identity, ...], size: int | None) -> List[tuple[Identity, ...]]:
    if not size or len(identities) <= size:
        return [identities]
    return [identities[i : i + size] for i in range(0, len(identities), size)]


class RequestBatcher:
    """Turn a round's partitions into backend calls and fill the cache."""

    def __init__(
        self,
        cache: DataSourceCache,
        thread_pool: ThreadPoolManager,
        config: EngineConfig | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.thread_pool = thread_pool
        self.config = config or EngineConfig()
        self.logger = logger or structlog.get_logger("batchfetch.batcher")

    def run_round(self, requests: Iterable[FetchRequest]) -> List[PartitionResult]:
        """Execute every request and return results in completion order.

        A single request runs on the calling thread; several requests run
        concurrently on the shared pool. Every partition is awaited even when
        a sibling fails so the round's trace stays complete.
        """

        pending = list(requests)
        if len(pending) == 1:
            return [self.execute(pending[0])]
        pool = self.thread_pool.get()
        futures: List[Future[PartitionResult]] = [pool.submit(self.execute, request) for request in pending]
        return [future.result() for future in as_completed(futures)]

    def execute(self, request: FetchRequest) -> PartitionResult:
        """Issue the backend call(s) for one request; errors are captured, not raised."""

        started = time.perf_counter()
        log = self.logger.bind(source=request.source_name)
        try:
            if isinstance(request, FetchOne):
                value = request.source.fetch_one(request.identity)
                found = {} if value is None else {request.identity: value}
                calls = 1
            else:
                found, calls = self._fetch_many(request)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "source_call_failed",
                identities=list(request.identities),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return PartitionResult(
                request=request,
                found={},
                missing=[],
                elapsed=time.perf_counter() - started,
                error=exc,
            )

        if found:
            self.cache.update({cache_key(request.source_name, i): v for i, v in found.items()})
        missing = [identity for identity in request.identities if identity not in found]
        elapsed = time.perf_counter() - started
        if missing:
            log.info("identities_missing", missing=missing)
        log.debug(
            "partition_completed",
            requested=len(request.identities),
            found=len(found),
            backend_calls=calls,
            elapsed=elapsed,
        )
        return PartitionResult(
            request=request,
            found=found,
            missing=missing,
            elapsed=elapsed,
            backend_calls=calls,
        )

    # ------------------------------------------------------------------
    def _fetch_many(self, request: FetchMany) -> tuple[Dict[Identity, Any], int]:
        source = request.source
        settings = self.config.settings_for(source.name)
        max_batch_size = settings.max_batch_size or source.max_batch_size
        execution = settings.batch_execution or source.batch_execution
        chunks = _chunks(request.identities, max_batch_size)

        if len(chunks) == 1 or execution is BatchExecution.SEQUENTIAL:
            responses = [source.fetch_many(chunk) for chunk in chunks]
        else:
            pool = self.thread_pool.get(source.name, settings.max_workers)
            responses = list(pool.map(source.fetch_many, chunks))

        found: Dict[Identity, Any] = {}
        wanted = set(request.identities)
        for response in responses:
            found.update(self._accepted(response, wanted))
        return found, len(chunks)

    @staticmethod
    def _accepted(response: Mapping[Identity, Any] | None, wanted: set) -> Dict[Identity, Any]:
        if not response:
            return {}
        return {i: v for i, v in response.items() if i in wanted}


__all__ = ["Partition", "PartitionResult", "RequestBatcher"]
