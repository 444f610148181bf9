from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from batchfetch.engine import InMemoryCache, SQLiteCache, cache_key, lookup, traverse
from batchfetch.infra import SQLiteManager


def test_in_memory_cache_operations(user_source) -> None:
    cache = InMemoryCache()
    key = cache_key(user_source, 1)

    assert key == ("User", 1)
    assert not cache.contains(key)
    assert cache.get(key) is None
    assert cache.get(key, "fallback") == "fallback"

    cache.put(key, "alice")
    cache.update({("User", 2): "bob"})

    assert cache.contains(key)
    assert key in cache
    assert len(cache) == 2
    assert cache.snapshot() == {("User", 1): "alice", ("User", 2): "bob"}


def test_in_memory_cache_concurrent_writes_are_not_lost() -> None:
    cache = InMemoryCache()

    def _fill(source: str) -> None:
        for i in range(200):
            cache.put((source, i), i)

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(_fill, ["A", "B", "C", "D"]))

    assert len(cache) == 800


def test_sqlite_cache_persists_across_instances(tmp_path, users) -> None:
    manager = SQLiteManager()
    db_path = tmp_path / "cache.db"
    cache = SQLiteCache(manager, db_path)

    cache.put(("User", 1), users[1])
    cache.update([(("User", (2, "composite")), users[2])])

    reopened = SQLiteCache(SQLiteManager(), db_path)
    assert reopened.contains(("User", 1))
    assert reopened.get(("User", 1)) == users[1]
    assert reopened.get(("User", (2, "composite"))) == users[2]
    assert reopened.get(("User", 3), "absent") == "absent"
    assert len(reopened) == 2
    assert set(reopened.snapshot()) == {("User", 1), ("User", (2, "composite"))}
    manager.close_all()


def test_sqlite_cache_serves_later_executions(tmp_path, executor, user_source) -> None:
    manager = SQLiteManager()
    cache = SQLiteCache(manager, tmp_path / "cache.db")

    executor.run(traverse([1, 2], lambda i: lookup(user_source, i)), cache=cache)
    env = executor.run_env(traverse([1, 2, 3], lambda i: lookup(user_source, i)), cache=cache)

    assert user_source.calls == [("many", (1, 2)), ("one", 3)]
    assert env.round_count == 1

    cache.reset()
    assert len(cache) == 0
    manager.close_all()


def test_sqlite_cache_creates_its_own_table(tmp_path) -> None:
    manager = SQLiteManager()
    db_path = tmp_path / "cache.db"
    SQLiteCache(manager, db_path)

    conn = manager.connect(db_path)
    columns = [row["name"] for row in conn.execute("PRAGMA table_info(fetch_cache)").fetchall()]
    assert columns == ["source_name", "identity", "payload", "stored_at"]
    manager.close_all()


def test_sqlite_cache_keeps_none_values(tmp_path) -> None:
    manager = SQLiteManager()
    cache = SQLiteCache(manager, tmp_path / "cache.db")

    cache.put(("User", 1), None)

    assert cache.contains(("User", 1))
    assert cache.get(("User", 1), "absent") is None
    manager.close_all()
