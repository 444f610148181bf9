"""Fetch descriptions: an explicit expression graph of lookups.

Nothing here performs I/O. A description is a tree of tagged nodes that the
executor reduces round by round:

* ``Pure``        an already known value
* ``Lookup``      one identity of one source
* ``LookupMany``  several identities of one source, resolved as a list
* ``Failed``      fails the execution when reached
* ``Sequential``  ``first`` must resolve before ``continuation`` builds the rest
* ``Independent`` children without data dependencies, resolved in shared rounds
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, TypeVar

from .source import DataSource, Identity

T = TypeVar("T")


class NodeKind(str, Enum):
    PURE = "pure"
    LOOKUP = "lookup"
    LOOKUP_MANY = "lookup_many"
    FAILED = "failed"
    SEQUENTIAL = "sequential"
    INDEPENDENT = "independent"


class Fetch:
    """Base of every description node."""

    __slots__ = ()
    kind: ClassVar[NodeKind]

    def then(self, continuation: Callable[[Any], "Fetch"]) -> "Fetch":
        """Feed the resolved value into ``continuation`` to build the next fetch."""

        return Sequential(self, continuation)

    def map(self, fn: Callable[[Any], Any]) -> "Fetch":
        return Sequential(self, lambda value: Pure(fn(value)))

    def join(self, other: "Fetch") -> "Fetch":
        """Pair this fetch with an independent one, resolving to a tuple."""

        return Independent((self, other))


@dataclass(frozen=True, slots=True)
class Pure(Fetch):
    kind: ClassVar[NodeKind] = NodeKind.PURE

    value: Any


@dataclass(frozen=True, slots=True)
class Lookup(Fetch):
    kind: ClassVar[NodeKind] = NodeKind.LOOKUP

    source: DataSource
    identity: Identity


@dataclass(frozen=True, slots=True)
class LookupMany(Fetch):
    kind: ClassVar[NodeKind] = NodeKind.LOOKUP_MANY

    source: DataSource
    identities: tuple[Identity, ...]


@dataclass(frozen=True, slots=True)
class Failed(Fetch):
    kind: ClassVar[NodeKind] = NodeKind.FAILED

    error: BaseException


@dataclass(frozen=True, slots=True)
class Sequential(Fetch):
    kind: ClassVar[NodeKind] = NodeKind.SEQUENTIAL

    first: Fetch
    continuation: Callable[[Any], Fetch]


def _as_tuple(*values: Any) -> tuple:
    return values


def _as_list(*values: Any) -> list:
    return list(values)


@dataclass(frozen=True, slots=True)
class Independent(Fetch):
    kind: ClassVar[NodeKind] = NodeKind.INDEPENDENT

    children: tuple[Fetch, ...]
    combine: Callable[..., Any] = _as_tuple


# ----------------------------------------------------------------------
# Combinators
# ----------------------------------------------------------------------
def _require_fetch(item: Any) -> Fetch:
    if not isinstance(item, Fetch):
        raise TypeError(f"Expected Fetch, got {type(item).__name__}")
    return item


def _require_source(source: Any) -> DataSource:
    if not isinstance(source, DataSource):
        raise TypeError(f"Expected DataSource, got {type(source).__name__}")
    # Cache keys and round partitions are keyed by name.
    if not isinstance(source.name, str) or not source.name.strip():
        raise ValueError(f"{type(source).__name__} has no name")
    return source


def pure(value: Any) -> Fetch:
    return Pure(value)


def lookup(source: DataSource, identity: Identity) -> Fetch:
    return Lookup(_require_source(source), identity)


def lookup_many(source: DataSource, identities: Iterable[Identity]) -> Fetch:
    return LookupMany(_require_source(source), tuple(identities))


def error(exc: BaseException) -> Fetch:
    return Failed(exc)


def sequential(first: Fetch, continuation: Callable[[Any], Fetch]) -> Fetch:
    if not callable(continuation):
        raise TypeError(f"Continuation must be callable, got {type(continuation).__name__}")
    return Sequential(_require_fetch(first), continuation)


def independent(*fetches: Fetch, combine: Callable[..., Any] | None = None) -> Fetch:
    """Combine fetches sharing no data dependency.

    The result is ``combine(*values)``, a tuple of the values by default.
    """

    return Independent(tuple(_require_fetch(item) for item in fetches), combine or _as_tuple)


def traverse(items: Iterable[T], fn: Callable[[T], Fetch]) -> Fetch:
    """Apply ``fn`` to every item and collect the independent results in a list."""

    return Independent(tuple(_require_fetch(fn(item)) for item in items), _as_list)


__all__ = [
    "Failed",
    "Fetch",
    "Independent",
    "Lookup",
    "LookupMany",
    "NodeKind",
    "Pure",
    "Sequential",
    "error",
    "independent",
    "lookup",
    "lookup_many",
    "pure",
    "sequential",
    "traverse",
]
