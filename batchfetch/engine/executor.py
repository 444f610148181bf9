"""Round scheduler interpreting fetch descriptions."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Generic, List, TypeVar

import structlog

from ..config import ConfigRepository, EngineConfig, ExecutionMode
from ..logging_conf import configure_logging
from .batcher import Partition, PartitionResult, RequestBatcher
from .cache import DataSourceCache, InMemoryCache, cache_key, is_missing, lookup_cached
from .errors import FetchException, MissingIdentities, NotFound, UnhandledException
from .fetch import Fetch, Independent, NodeKind, Pure, Sequential
from .source import FetchOne
from .thread_pool import ThreadPoolManager
from .trace import Env, PartitionTrace, Round

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T
    env: Env

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure:
    error: FetchException

    @property
    def ok(self) -> bool:
        return False

    @property
    def env(self) -> Env:
        return self.error.env


FetchResult = Success | Failure


class FetchExecutor:
    """Reduce a fetch description to a value, one round of backend calls at a time.

    Each loop iteration substitutes cached values into the description, then
    collects the frontier (unresolved lookups that do not wait on a pending
    sequential step), groups it by source and hands it to the batcher as one
    round. A failing round stops the loop: nothing that depends on it runs.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        thread_pool: ThreadPoolManager | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._owns_pool = thread_pool is None
        self.thread_pool = thread_pool or ThreadPoolManager(
            default_workers=self.config.max_workers,
            thread_name_prefix=self.config.thread_name_prefix,
        )
        self.logger = logger or structlog.get_logger("batchfetch.executor")

    @classmethod
    def from_repository(cls, repository: ConfigRepository | None = None) -> "FetchExecutor":
        """Build an executor from the stored engine config, with logging configured."""

        repository = repository or ConfigRepository()
        config = repository.load_engine_config()
        logger = configure_logging(config.verbose_logging, repository.locator.logs_dir)
        return cls(config, logger=logger.bind(component="executor"))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def run(
        self,
        fetch: Fetch,
        cache: DataSourceCache | None = None,
        mode: ExecutionMode | str | None = None,
    ) -> Any:
        """Run ``fetch``; ``raise`` mode returns the value, ``attempt`` a ``FetchResult``."""

        resolved_mode = ExecutionMode(mode) if mode is not None else self.config.default_mode
        if resolved_mode is ExecutionMode.ATTEMPT:
            return self.attempt(fetch, cache)
        _, value = self.run_with_env(fetch, cache)
        return value

    def attempt(self, fetch: Fetch, cache: DataSourceCache | None = None) -> FetchResult:
        try:
            env, value = self.run_with_env(fetch, cache)
        except FetchException as exc:
            return Failure(exc)
        return Success(value, env)

    def run_env(self, fetch: Fetch, cache: DataSourceCache | None = None) -> Env:
        env, _ = self.run_with_env(fetch, cache)
        return env

    def run_with_env(self, fetch: Fetch, cache: DataSourceCache | None = None) -> tuple[Env, Any]:
        if not isinstance(fetch, Fetch):
            raise TypeError(f"Expected Fetch, got {type(fetch).__name__}")
        cache = cache if cache is not None else InMemoryCache()
        env = Env(cache)
        batcher = RequestBatcher(
            cache, self.thread_pool, self.config, self.logger.bind(component="batcher")
        )
        self.logger.debug("fetch_started", cached_entries=len(cache))
        node = fetch
        try:
            while True:
                node = self._reduce(node, cache, env)
                if isinstance(node, Pure):
                    break
                self._run_round(node, cache, env, batcher)
        except FetchException as exc:
            env.freeze()
            self.logger.warning(
                "fetch_failed",
                kind=exc.kind.value,
                rounds=env.round_count,
                elapsed=env.elapsed,
                error=str(exc),
            )
            raise
        env.freeze()
        self.logger.info("fetch_completed", rounds=env.round_count, elapsed=env.elapsed)
        return env, node.value

    def close(self) -> None:
        if self._owns_pool:
            self.thread_pool.shutdown()

    def __enter__(self) -> "FetchExecutor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reduction
    # ------------------------------------------------------------------
    def _reduce(self, node: Fetch, cache: DataSourceCache, env: Env) -> Fetch:
        """Substitute cached values and run continuations whose input is known.

        ``Sequential`` chains are unwound onto an explicit continuation stack,
        so a long ``.then``/``.map`` chain does not consume Python stack. When
        the chain's innermost step is still unresolved the pending
        continuations are folded back around it in their original order.
        """

        pending: List[Callable[[Any], Any]] = []
        current: Any = node
        while True:
            current = self._expect_fetch(current, env)
            while current.kind is NodeKind.SEQUENTIAL:
                pending.append(current.continuation)
                current = self._expect_fetch(current.first, env)
            current = self._reduce_step(current, cache, env)
            if not isinstance(current, Pure):
                while pending:
                    current = Sequential(current, pending.pop())
                return current
            if not pending:
                return current
            current = self._call(pending.pop(), (current.value,), env)

    def _reduce_step(self, node: Fetch, cache: DataSourceCache, env: Env) -> Fetch:
        kind = node.kind
        if kind is NodeKind.PURE:
            return node
        if kind is NodeKind.FAILED:
            raise UnhandledException(node.error, env) from node.error
        if kind is NodeKind.LOOKUP:
            value = lookup_cached(cache, cache_key(node.source, node.identity))
            return node if is_missing(value) else Pure(value)
        if kind is NodeKind.LOOKUP_MANY:
            values = []
            for identity in node.identities:
                value = lookup_cached(cache, cache_key(node.source, identity))
                if is_missing(value):
                    return node
                values.append(value)
            return Pure(values)
        if kind is NodeKind.INDEPENDENT:
            children = tuple(self._reduce(child, cache, env) for child in node.children)
            if all(isinstance(child, Pure) for child in children):
                values = tuple(child.value for child in children)
                return Pure(self._call(node.combine, values, env))
            return Independent(children, node.combine)
        raise TypeError(f"Unknown fetch node: {node!r}")

    @staticmethod
    def _expect_fetch(node: Any, env: Env) -> Fetch:
        if isinstance(node, Fetch):
            return node
        error = TypeError(f"Expected a Fetch, got {type(node).__name__}")
        raise UnhandledException(error, env) from error

    @staticmethod
    def _call(fn: Callable[..., Any], args: tuple, env: Env) -> Any:
        try:
            return fn(*args)
        except FetchException:
            raise
        except Exception as exc:  # noqa: BLE001
            raise UnhandledException(exc, env) from exc

    def _frontier(self, node: Fetch, cache: DataSourceCache, partitions: Dict[str, Partition]) -> None:
        stack = [node]
        while stack:
            current = stack.pop()
            kind = current.kind
            if kind is NodeKind.LOOKUP:
                self._partition(partitions, current.source).add(current.identity)
            elif kind is NodeKind.LOOKUP_MANY:
                partition = self._partition(partitions, current.source)
                for identity in current.identities:
                    if not cache.contains(cache_key(current.source, identity)):
                        partition.add(identity)
            elif kind is NodeKind.SEQUENTIAL:
                stack.append(current.first)
            elif kind is NodeKind.INDEPENDENT:
                stack.extend(reversed(current.children))

    @staticmethod
    def _partition(partitions: Dict[str, Partition], source: Any) -> Partition:
        partition = partitions.get(source.name)
        if partition is None:
            partition = partitions[source.name] = Partition(source)
        return partition

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------
    def _run_round(
        self, node: Fetch, cache: DataSourceCache, env: Env, batcher: RequestBatcher
    ) -> None:
        partitions: Dict[str, Partition] = {}
        self._frontier(node, cache, partitions)
        requests = [p.to_request() for p in partitions.values() if p.identities]
        if not requests:
            raise RuntimeError(f"Fetch cannot make progress: {node!r}")

        number = env.round_count + 1
        self.logger.debug(
            "round_started",
            round=number,
            sources=[request.source_name for request in requests],
        )
        started = time.perf_counter()
        results = batcher.run_round(requests)
        finished = time.perf_counter()
        self._raise_for_failures(results, env)

        env.add_round(
            Round(
                partitions=tuple(
                    PartitionTrace(r.request, r.elapsed, r.backend_calls) for r in results
                ),
                started_at=started,
                finished_at=finished,
            )
        )
        self.logger.debug("round_completed", round=number, elapsed=finished - started)

    @staticmethod
    def _raise_for_failures(results: list[PartitionResult], env: Env) -> None:
        for result in results:
            if result.error is not None:
                raise UnhandledException(result.error, env) from result.error
        missing = {r.request.source_name: r.missing for r in results if r.missing}
        if not missing:
            return
        if len(results) == 1 and isinstance(results[0].request, FetchOne):
            raise NotFound(results[0].request, env)
        raise MissingIdentities(missing, env)


# ----------------------------------------------------------------------
# Module level helpers backed by a lazily created executor
# ----------------------------------------------------------------------
_DEFAULT_EXECUTOR: FetchExecutor | None = None
_DEFAULT_LOCK = Lock()


def default_executor() -> FetchExecutor:
    global _DEFAULT_EXECUTOR
    with _DEFAULT_LOCK:
        if _DEFAULT_EXECUTOR is None or _DEFAULT_EXECUTOR.thread_pool.closed:
            _DEFAULT_EXECUTOR = FetchExecutor()
        return _DEFAULT_EXECUTOR


def run(fetch: Fetch, cache: DataSourceCache | None = None, mode: ExecutionMode | str | None = None) -> Any:
    return default_executor().run(fetch, cache, mode)


def attempt(fetch: Fetch, cache: DataSourceCache | None = None) -> FetchResult:
    return default_executor().attempt(fetch, cache)


def run_env(fetch: Fetch, cache: DataSourceCache | None = None) -> Env:
    return default_executor().run_env(fetch, cache)


__all__ = [
    "Failure",
    "FetchExecutor",
    "FetchResult",
    "Success",
    "attempt",
    "default_executor",
    "run",
    "run_env",
]
