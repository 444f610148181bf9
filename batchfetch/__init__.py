"""batchfetch: batched, cached and concurrent fetching from pluggable data sources."""

from .config import BatchExecution, ConfigRepository, EngineConfig, ExecutionMode, SourceSettings
from .engine import (
    DataSource,
    DataSourceCache,
    Env,
    Failure,
    Fetch,
    FetchErrorKind,
    FetchException,
    FetchExecutor,
    FetchMany,
    FetchOne,
    FetchResult,
    InMemoryCache,
    InMemorySource,
    MissingIdentities,
    NotFound,
    Round,
    RoundKind,
    SQLiteCache,
    Success,
    UnhandledException,
    attempt,
    describe,
    error,
    independent,
    lookup,
    lookup_many,
    pure,
    run,
    run_env,
    sequential,
    traverse,
)
from .logging_conf import configure_logging

__version__ = "0.1.0"

__all__ = [
    "BatchExecution",
    "ConfigRepository",
    "DataSource",
    "DataSourceCache",
    "EngineConfig",
    "Env",
    "ExecutionMode",
    "Failure",
    "Fetch",
    "FetchErrorKind",
    "FetchException",
    "FetchExecutor",
    "FetchMany",
    "FetchOne",
    "FetchResult",
    "InMemoryCache",
    "InMemorySource",
    "MissingIdentities",
    "NotFound",
    "Round",
    "RoundKind",
    "SQLiteCache",
    "SourceSettings",
    "Success",
    "UnhandledException",
    "attempt",
    "configure_logging",
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
