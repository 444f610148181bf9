from __future__ import annotations

import re

import pytest

from batchfetch.engine import (
    Env,
    InMemoryCache,
    describe,
    error,
    independent,
    lookup,
    lookup_many,
    traverse,
)
from batchfetch.engine.trace import PartitionTrace, Round, RoundKind
from batchfetch.engine.source import FetchMany, FetchOne

SECONDS = r"\d+\.\d{6} seconds"


def test_describe_successful_execution(executor, user_source, post_source) -> None:
    fetch = lookup_many(user_source, [1, 2]).then(
        lambda _: independent(
            traverse([1, 2, 3], lambda i: lookup(user_source, i)),
            traverse([1, 2, 3], lambda i: lookup(post_source, i)),
        )
    )
    env = executor.run_env(fetch)

    lines = describe(env).splitlines()

    assert re.fullmatch(rf"Fetch execution took {SECONDS}", lines[0])
    assert lines[1] == ""
    assert re.fullmatch(rf"    \[Fetch many\] From `User` with ids \[1, 2\] took {SECONDS}", lines[2])
    assert re.fullmatch(rf"    \[Concurrent\] took {SECONDS}", lines[3])
    assert sorted(lines[4:]) == [
        "      [Fetch many] From `Post` with ids [1, 2, 3]",
        "      [Fetch one] From `User` with id 3",
    ]


def test_describe_unhandled_failure(executor, user_source) -> None:
    fetch = lookup(user_source, 1).then(
        lambda _: lookup(user_source, 2).then(lambda _: error(Exception("Oh noes")))
    )
    failure = executor.attempt(fetch).error

    lines = describe(failure).splitlines()

    assert lines[0] == "[Error] Unhandled `Exception`: 'Oh noes', fetch interrupted after 2 rounds"
    assert lines[1].startswith("Fetch execution took ")
    assert re.fullmatch(rf"    \[Fetch one\] From `User` with id 1 took {SECONDS}", lines[3])
    assert re.fullmatch(rf"    \[Fetch one\] From `User` with id 2 took {SECONDS}", lines[4])


def test_describe_not_found(executor, user_source) -> None:
    failure = executor.attempt(lookup(user_source, 5)).error

    lines = describe(failure).splitlines()

    assert lines[0] == "[Error] Identity not found: 5 in `User`, fetch interrupted after 0 rounds"
    assert len(lines) == 2


def test_describe_missing_identities(executor, user_source) -> None:
    failure = executor.attempt(traverse([3, 4, 6, 7], lambda i: lookup(user_source, i))).error

    lines = describe(failure).splitlines()

    assert lines[:2] == [
        "[Error] Missing identities, fetch interrupted after 0 rounds",
        "`User` missing identities [6, 7]",
    ]


def test_describe_rejects_other_objects() -> None:
    with pytest.raises(TypeError):
        describe("not an env")


def test_round_kind_follows_partitions(user_source, post_source) -> None:
    one = PartitionTrace(FetchOne(1, user_source), elapsed=0.1)
    many = PartitionTrace(FetchMany((1, 2), post_source), elapsed=0.2)

    assert Round((one,), 0.0, 1.0).kind is RoundKind.FETCH_ONE
    assert Round((many,), 0.0, 1.0).kind is RoundKind.FETCH_MANY
    concurrent = Round((many, one), 0.0, 1.5)
    assert concurrent.kind is RoundKind.CONCURRENT
    assert concurrent.elapsed == 1.5
    assert concurrent.source_names == ("Post", "User")


def test_env_rounds_grow_until_frozen(user_source) -> None:
    env = Env(InMemoryCache())
    round_ = Round((PartitionTrace(FetchOne(1, user_source), elapsed=0.0),), 0.0, 0.0)

    env.add_round(round_)
    env.add_round(round_)
    assert env.round_count == 2

    env.freeze()
    elapsed = env.elapsed
    with pytest.raises(RuntimeError):
        env.add_round(round_)
    assert env.round_count == 2
    assert env.elapsed == elapsed
