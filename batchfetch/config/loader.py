"""Configuration loading helpers for batchfetch."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import EngineConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
ENGINE_CONFIG_FILENAME = "engine_config.yaml"
HOME_ENV_VAR = "BATCHFETCH_HOME"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def engine_config_path(self) -> Path:
        return self.data_dir / ENGINE_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._engine_cache: EngineConfig | None = None

    def load_engine_config(self, path: Path | None = None) -> EngineConfig:
        if path is not None:
            if not path.exists():
                raise FileNotFoundError(f"Engine configuration not found: {path}")
            return EngineConfig.model_validate(_read_file(path))
        if self._engine_cache is not None:
            return self._engine_cache
        default_path = self.locator.engine_config_path()
        if default_path.exists():
            config = EngineConfig.model_validate(_read_file(default_path))
        else:
            config = EngineConfig()
            self.save_engine_config(config)
        self._engine_cache = config
        return config

    def save_engine_config(self, config: EngineConfig, path: Path | None = None) -> Path:
        target = path or self.locator.engine_config_path()
        if target.suffix not in CONFIG_EXTENSIONS:
            raise ValueError(f"Unsupported configuration format: {target.suffix}")
        _write_file(target, config.model_dump(mode="json"))
        if path is None:
            self._engine_cache = config
        return target

    def reload(self) -> EngineConfig:
        self._engine_cache = None
        return self.load_engine_config()


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS", "HOME_ENV_VAR"]
