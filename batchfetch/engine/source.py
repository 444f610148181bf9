"""Identity and data source model shared by the batcher and executor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Mapping, Tuple

from ..config.models import BatchExecution

Identity = Hashable
CacheKey = Tuple[str, Identity]


class DataSource(ABC):
    """Pluggable backend able to resolve identities of a single kind.

    Subclasses provide a unique, non-empty ``name`` plus ``fetch_one``;
    ``fetch_many`` defaults to one ``fetch_one`` per identity and should be
    overridden by backends with a native batch endpoint.

    ``None`` is the not-found marker of ``fetch_one`` only. A key present in
    the mapping returned by ``fetch_many`` counts as found whatever its value.
    """

    name: str = ""
    max_batch_size: int | None = None
    batch_execution: BatchExecution = BatchExecution.PARALLEL

    @abstractmethod
    def fetch_one(self, identity: Identity) -> Any | None:
        """Return the value for ``identity`` or ``None`` when it does not exist."""

    def fetch_many(self, identities: Iterable[Identity]) -> Mapping[Identity, Any]:
        """Return a mapping for the identities found; only absent keys are missing."""

        results: dict[Identity, Any] = {}
        for identity in identities:
            value = self.fetch_one(identity)
            if value is not None:
                results[identity] = value
        return results

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class InMemorySource(DataSource):
    """Dictionary backed source, handy for fixtures and local experiments."""

    def __init__(
        self,
        name: str,
        records: Mapping[Identity, Any],
        max_batch_size: int | None = None,
        batch_execution: BatchExecution = BatchExecution.PARALLEL,
    ) -> None:
        if not name or not name.strip():
            raise ValueError("InMemorySource requires a non-empty name")
        self.name = name
        self.records = dict(records)
        self.max_batch_size = max_batch_size
        self.batch_execution = batch_execution

    def fetch_one(self, identity: Identity) -> Any | None:
        return self.records.get(identity)

    def fetch_many(self, identities: Iterable[Identity]) -> Mapping[Identity, Any]:
        return {i: self.records[i] for i in identities if i in self.records}


@dataclass(frozen=True, slots=True, eq=False)
class FetchOne:
    """Round request for a single identity."""

    identity: Identity
    source: DataSource

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FetchOne):
            return NotImplemented
        return (self.identity, self.source_name) == (other.identity, other.source_name)

    def __hash__(self) -> int:
        return hash((FetchOne, self.identity, self.source_name))

    @property
    def source_name(self) -> str:
        return self.source.name

    @property
    def identities(self) -> tuple[Identity, ...]:
        return (self.identity,)

    def __repr__(self) -> str:
        return f"FetchOne({self.identity!r}, {self.source_name})"


@dataclass(frozen=True, slots=True, eq=False)
class FetchMany:
    """Round request for several identities of one source."""

    identities: tuple[Identity, ...]
    source: DataSource

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FetchMany):
            return NotImplemented
        return (self.identities, self.source_name) == (other.identities, other.source_name)

    def __hash__(self) -> int:
        return hash((FetchMany, self.identities, self.source_name))

    @property
    def source_name(self) -> str:
        return self.source.name

    def __repr__(self) -> str:
        return f"FetchMany({list(self.identities)!r}, {self.source_name})"


FetchRequest = FetchOne | FetchMany


def build_request(source: DataSource, identities: Iterable[Identity]) -> FetchRequest:
    """Pick ``FetchOne`` for a single identity and ``FetchMany`` otherwise."""

    ordered = tuple(identities)
    if not ordered:
        raise ValueError(f"No identities requested from `{source.name}`")
    if len(ordered) == 1:
        return FetchOne(ordered[0], source)
    return FetchMany(ordered, source)


__all__ = [
    "BatchExecution",
    "CacheKey",
    "DataSource",
    "FetchMany",
    "FetchOne",
    "FetchRequest",
    "Identity",
    "InMemorySource",
    "build_request",
]
