from __future__ import annotations

import json
from pathlib import Path

import pytest

from batchfetch.config import ConfigLocator, ConfigRepository, EngineConfig, SourceSettings


def test_config_locator_uses_env_and_creates_directories(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BATCHFETCH_HOME", str(tmp_path))
    locator = ConfigLocator()

    assert locator.project_root == tmp_path.resolve()
    assert locator.data_dir.exists()
    assert locator.logs_dir.exists()
    assert locator.engine_config_path() == tmp_path.resolve() / "data" / "engine_config.yaml"


def test_missing_config_writes_defaults(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load_engine_config()

    assert config == EngineConfig()
    assert temp_config_repository.locator.engine_config_path().exists()


def test_config_roundtrip(temp_config_repository: ConfigRepository) -> None:
    config = EngineConfig(max_workers=3, sources={"User": SourceSettings(max_batch_size=10)})
    temp_config_repository.save_engine_config(config)

    assert temp_config_repository.reload() == config


def test_explicit_json_path(temp_config_repository: ConfigRepository, tmp_path: Path) -> None:
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"max_workers": 2, "verbose_logging": True}), encoding="utf-8")

    config = temp_config_repository.load_engine_config(path)

    assert config.max_workers == 2
    assert config.verbose_logging


def test_invalid_config_files(temp_config_repository: ConfigRepository, tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        temp_config_repository.load_engine_config(tmp_path / "absent.yaml")

    listing = tmp_path / "listing.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        temp_config_repository.load_engine_config(listing)

    with pytest.raises(ValueError):
        temp_config_repository.save_engine_config(EngineConfig(), tmp_path / "config.toml")
