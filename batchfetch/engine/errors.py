"""Failures reported by the fetch executor.

``FetchException`` has exactly three variants and refuses further subclasses,
so callers can match exhaustively on either the class or ``kind``::

    match error:
        case NotFound(request=request):
            ...
        case MissingIdentities(missing=missing):
            ...
        case UnhandledException(cause=cause):
            ...
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, final

from .source import FetchOne, Identity
from .trace import Env


class FetchErrorKind(str, Enum):
    UNHANDLED = "unhandled"
    NOT_FOUND = "not_found"
    MISSING_IDENTITIES = "missing_identities"


_VARIANTS = frozenset({"UnhandledException", "NotFound", "MissingIdentities"})


class FetchException(Exception):
    """Closed base of every fetch failure; always carries the partial env."""

    kind: ClassVar[FetchErrorKind]
    __match_args__: ClassVar[tuple[str, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.__module__ != __name__ or cls.__name__ not in _VARIANTS:
            raise TypeError(f"FetchException is a closed type; cannot subclass with {cls.__name__}")

    def __init__(self, message: str, env: Env) -> None:
        super().__init__(message)
        self.env = env

    @property
    def rounds(self) -> int:
        return self.env.round_count

    def describe_header(self) -> List[str]:
        raise NotImplementedError


@final
class UnhandledException(FetchException):
    """A source, continuation or ``error`` node raised."""

    kind = FetchErrorKind.UNHANDLED
    __match_args__ = ("cause", "env")

    def __init__(self, cause: BaseException, env: Env) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}", env)
        self.cause = cause

    def describe_header(self) -> List[str]:
        return [
            f"[Error] Unhandled `{type(self.cause).__name__}`: '{self.cause}',"
            f" fetch interrupted after {self.rounds} rounds"
        ]


@final
class NotFound(FetchException):
    """The only request of a round was a ``FetchOne`` that returned nothing."""

    kind = FetchErrorKind.NOT_FOUND
    __match_args__ = ("request", "env")

    def __init__(self, request: FetchOne, env: Env) -> None:
        super().__init__(f"Identity {request.identity!r} not found in `{request.source_name}`", env)
        self.request = request

    def describe_header(self) -> List[str]:
        return [
            f"[Error] Identity not found: {self.request.identity!r} in"
            f" `{self.request.source_name}`, fetch interrupted after {self.rounds} rounds"
        ]


@final
class MissingIdentities(FetchException):
    """Identities absent from one or more sources' responses, grouped by source."""

    kind = FetchErrorKind.MISSING_IDENTITIES
    __match_args__ = ("missing", "env")

    def __init__(self, missing: Mapping[str, List[Identity]], env: Env) -> None:
        self.missing: Dict[str, List[Identity]] = {name: list(ids) for name, ids in missing.items()}
        summary = ", ".join(f"{name}: {ids!r}" for name, ids in self.missing.items())
        super().__init__(f"Missing identities ({summary})", env)

    def describe_header(self) -> List[str]:
        lines = [f"[Error] Missing identities, fetch interrupted after {self.rounds} rounds"]
        for name, identities in self.missing.items():
            lines.append(f"`{name}` missing identities {identities!r}")
        return lines


__all__ = [
    "FetchErrorKind",
    "FetchException",
    "MissingIdentities",
    "NotFound",
    "UnhandledException",
]
