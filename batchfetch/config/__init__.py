"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import BatchExecution, EngineConfig, ExecutionMode, SourceSettings

__all__ = [
    "BatchExecution",
    "ConfigLocator",
    "ConfigRepository",
    "EngineConfig",
    "ExecutionMode",
    "SourceSettings",
]
