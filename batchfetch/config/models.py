"""Pydantic models describing engine and per-source settings."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class ExecutionMode(str, Enum):
    """How ``FetchExecutor.run`` reports failures."""

    RAISE = "raise"
    ATTEMPT = "attempt"


class BatchExecution(str, Enum):
    """How chunks of an oversized batch are dispatched."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class SourceSettings(BaseModel):
    """Overrides applied to a data source, looked up by source name."""

    max_batch_size: int | None = Field(default=None, ge=1)
    batch_execution: BatchExecution | None = None
    max_workers: int | None = Field(default=None, ge=1)


class EngineConfig(BaseModel):
    """Global controls shared by every execution of an executor."""

    max_workers: int = Field(default=8, ge=1)
    thread_name_prefix: str = "batchfetch"
    default_mode: ExecutionMode = ExecutionMode.RAISE
    verbose_logging: bool = False
    sources: dict[str, SourceSettings] = Field(default_factory=dict)

    @field_validator("sources", mode="before")
    @classmethod
    def _coerce_sources(cls, value: Any) -> Any:
        if value is None:
            return {}
        return value

    @model_validator(mode="after")
    def _validate_prefix(self) -> "EngineConfig":
        if not self.thread_name_prefix.strip():
            raise ValueError("thread_name_prefix cannot be empty")
        return self

    def settings_for(self, source_name: str) -> SourceSettings:
        return self.sources.get(source_name) or SourceSettings()


__all__ = [
    "BatchExecution",
    "EngineConfig",
    "ExecutionMode",
    "SourceSettings",
]
