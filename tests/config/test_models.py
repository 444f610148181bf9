from __future__ import annotations

import pytest
from pydantic import ValidationError

from batchfetch.config import BatchExecution, EngineConfig, ExecutionMode, SourceSettings


def test_engine_config_defaults() -> None:
    config = EngineConfig()

    assert config.max_workers == 8
    assert config.thread_name_prefix == "batchfetch"
    assert config.default_mode is ExecutionMode.RAISE
    assert config.sources == {}
    assert config.settings_for("User") == SourceSettings()


def test_engine_config_coerces_nested_sources() -> None:
    config = EngineConfig.model_validate(
        {
            "default_mode": "attempt",
            "sources": {"User": {"max_batch_size": 50, "batch_execution": "sequential"}},
        }
    )

    settings = config.settings_for("User")
    assert config.default_mode is ExecutionMode.ATTEMPT
    assert settings.max_batch_size == 50
    assert settings.batch_execution is BatchExecution.SEQUENTIAL
    assert EngineConfig(sources=None).sources == {}


@pytest.mark.parametrize(
    "payload",
    [
        {"max_workers": 0},
        {"thread_name_prefix": "   "},
        {"default_mode": "lazy"},
        {"sources": {"User": {"max_batch_size": 0}}},
        {"sources": {"User": {"batch_execution": "random"}}},
    ],
)
def test_engine_config_rejects_invalid_values(payload: dict) -> None:
    with pytest.raises(ValidationError):
        EngineConfig.model_validate(payload)
