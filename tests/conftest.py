"""Shared fixtures: recording in-memory sources, executors and config repositories."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Iterable, Iterator, Mapping

import pytest

from batchfetch.config import ConfigLocator, ConfigRepository
from batchfetch.engine import FetchExecutor, InMemorySource


@dataclass(frozen=True)
class User:
    id: int
    username: str


@dataclass(frozen=True)
class Post:
    id: int
    author: int
    content: str


class RecordingSource(InMemorySource):
    """In-memory source remembering every backend call it receives."""

    def __init__(self, name: str, records: Mapping[Any, Any], **kwargs: Any) -> None:
        super().__init__(name, records, **kwargs)
        self.calls: list[tuple[str, Any]] = []
        self._calls_lock = Lock()

    def _record(self, call: tuple[str, Any]) -> None:
        with self._calls_lock:
            self.calls.append(call)

    def fetch_one(self, identity: Any) -> Any | None:
        self._record(("one", identity))
        return super().fetch_one(identity)

    def fetch_many(self, identities: Iterable[Any]) -> Mapping[Any, Any]:
        identities = tuple(identities)
        self._record(("many", identities))
        return super().fetch_many(identities)


class ExplodingSource(RecordingSource):
    def __init__(self, name: str = "Exploding", exc: Exception | None = None) -> None:
        super().__init__(name, {})
        self.exc = exc or RuntimeError("Oh noes")

    def fetch_one(self, identity: Any) -> Any | None:
        self._record(("one", identity))
        raise self.exc

    def fetch_many(self, identities: Iterable[Any]) -> Mapping[Any, Any]:
        self._record(("many", tuple(identities)))
        raise self.exc


USERS = {i: User(i, f"@user{i}") for i in (1, 2, 3, 4)}
POSTS = {i: Post(i, author=i, content=f"An article with id {i}") for i in (1, 2, 3)}


@pytest.fixture
def user_source() -> RecordingSource:
    return RecordingSource("User", USERS)


@pytest.fixture
def post_source() -> RecordingSource:
    return RecordingSource("Post", POSTS)


@pytest.fixture
def exploding_source() -> ExplodingSource:
    return ExplodingSource()


@pytest.fixture
def executor() -> Iterator[FetchExecutor]:
    with FetchExecutor() as instance:
        yield instance


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[ConfigRepository]:
    monkeypatch.setenv("BATCHFETCH_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository


@pytest.fixture
def users() -> dict[int, User]:
    return dict(USERS)


@pytest.fixture
def posts() -> dict[int, Post]:
    return dict(POSTS)


@pytest.fixture
def recording_source():
    """Factory building additional recording sources."""

    def _builder(name: str, records: Mapping[Any, Any], **kwargs: Any) -> RecordingSource:
        return RecordingSource(name, records, **kwargs)

    return _builder
