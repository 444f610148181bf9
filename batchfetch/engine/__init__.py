"""Engine components: description → rounds → batched source calls → cache."""

from .batcher import PartitionResult, RequestBatcher
from .cache import DataSourceCache, InMemoryCache, cache_key
from .errors import FetchErrorKind, FetchException, MissingIdentities, NotFound, UnhandledException
from .executor import Failure, FetchExecutor, FetchResult, Success, attempt, run, run_env
from .fetch import (
    Fetch,
    error,
    independent,
    lookup,
    lookup_many,
    pure,
    sequential,
    traverse,
)
from .persistent_cache import SQLiteCache
from .source import DataSource, FetchMany, FetchOne, FetchRequest, InMemorySource
from .thread_pool import ThreadPoolManager
from .trace import Env, Round, RoundKind, describe

__all__ = [
    "DataSource",
    "DataSourceCache",
    "Env",
    "Failure",
    "Fetch",
    "FetchErrorKind",
    "FetchException",
    "FetchExecutor",
    "FetchMany",
    "FetchOne",
    "FetchRequest",
    "FetchResult",
    "InMemoryCache",
    "InMemorySource",
    "MissingIdentities",
    "NotFound",
    "PartitionResult",
    "RequestBatcher",
    "Round",
    "RoundKind",
    "SQLiteCache",
    "Success",
    "ThreadPoolManager",
    "UnhandledException",
    "attempt",
    "cache_key",
    "describe",
    "error",
    "independent",
    "lookup",
    "lookup_many",
    "pure",
    "run",
    "run_env",
    "sequential",
    "traverse",
]
