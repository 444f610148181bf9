"""Execution trace records and the human readable ``describe`` renderer."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import TYPE_CHECKING, Any, Dict

from .cache import DataSourceCache
from .source import CacheKey, FetchMany, FetchOne, FetchRequest

if TYPE_CHECKING:
    from .errors import FetchException

INDENT = "    "
CHILD_INDENT = "  "


class RoundKind(str, Enum):
    FETCH_ONE = "Fetch one"
    FETCH_MANY = "Fetch many"
    CONCURRENT = "Concurrent"


@dataclass(frozen=True, slots=True)
class PartitionTrace:
    """Outcome of one source partition inside a round."""

    request: FetchRequest
    elapsed: float
    backend_calls: int = 1

    @property
    def kind(self) -> RoundKind:
        if isinstance(self.request, FetchOne):
            return RoundKind.FETCH_ONE
        return RoundKind.FETCH_MANY


@dataclass(frozen=True, slots=True)
class Round:
    """One scheduling step; partitions are kept in completion order."""

    partitions: tuple[PartitionTrace, ...]
    started_at: float
    finished_at: float

    @property
    def kind(self) -> RoundKind:
        if len(self.partitions) > 1:
            return RoundKind.CONCURRENT
        return self.partitions[0].kind

    @property
    def requests(self) -> tuple[FetchRequest, ...]:
        return tuple(p.request for p in self.partitions)

    @property
    def elapsed(self) -> float:
        return self.finished_at - self.started_at

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(p.request.source_name for p in self.partitions)


@dataclass
class Env:
    """Rounds completed by one execution plus the cache it filled.

    Rounds can only be appended while the execution runs; ``freeze`` takes the
    final cache snapshot and rejects any further mutation.
    """

    cache: DataSourceCache
    rounds: list[Round] = field(default_factory=list)
    started_at: float = field(default_factory=time.perf_counter)
    finished_at: float | None = None
    cache_snapshot: Dict[CacheKey, Any] | None = None
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    @property
    def frozen(self) -> bool:
        return self.finished_at is not None

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.perf_counter()
        return end - self.started_at

    @property
    def round_count(self) -> int:
        return len(self.rounds)

    def add_round(self, round_: Round) -> None:
        with self._lock:
            if self.finished_at is not None:
                raise RuntimeError("Env is frozen; execution already finished")
            self.rounds.append(round_)

    def freeze(self) -> "Env":
        with self._lock:
            if self.finished_at is None:
                self.finished_at = time.perf_counter()
                self.cache_snapshot = self.cache.snapshot()
                self.rounds = list(self.rounds)
        return self

    def __repr__(self) -> str:
        entries = self.cache_snapshot if self.cache_snapshot is not None else self.cache.snapshot()
        return f"Env(cache={entries!r}, rounds={self.rounds!r})"


# ----------------------------------------------------------------------
# describe
# ----------------------------------------------------------------------
def _seconds(value: float) -> str:
    return f"{value:.6f} seconds"


def _describe_request(request: FetchRequest) -> str:
    if isinstance(request, FetchMany):
        return f"From `{request.source_name}` with ids {list(request.identities)!r}"
    return f"From `{request.source_name}` with id {request.identity!r}"


def _describe_round(round_: Round) -> list[str]:
    if round_.kind is RoundKind.CONCURRENT:
        lines = [f"{INDENT}[{RoundKind.CONCURRENT.value}] took {_seconds(round_.elapsed)}"]
        for partition in round_.partitions:
            lines.append(
                f"{INDENT}{CHILD_INDENT}[{partition.kind.value}] {_describe_request(partition.request)}"
            )
        return lines
    partition = round_.partitions[0]
    return [
        f"{INDENT}[{partition.kind.value}] {_describe_request(partition.request)}"
        f" took {_seconds(round_.elapsed)}"
    ]


def describe_env(env: Env) -> str:
    lines = [f"Fetch execution took {_seconds(env.elapsed)}", ""]
    for round_ in env.rounds:
        lines.extend(_describe_round(round_))
    return "\n".join(lines)


def describe(target: "Env | FetchException") -> str:
    """Render an env, or a failed fetch and its env, as indented lines."""

    from .errors import FetchException

    if isinstance(target, FetchException):
        header = target.describe_header()
        return "\n".join([*header, describe_env(target.env)])
    if isinstance(target, Env):
        return describe_env(target)
    raise TypeError(f"Cannot describe object of type {type(target).__name__}")


__all__ = [
    "Env",
    "PartitionTrace",
    "Round",
    "RoundKind",
    "describe",
    "describe_env",
]
