"""Configuration loading from YAML + environment variables."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from pazuzu.common.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("config/default.yaml")


def _resolve_env_vars(value: str) -> str:
    """Resolve ${VAR:default} patterns in strings."""
    pattern = r"\$\{(\w+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _resolve_config(obj: Any) -> Any:
    """Recursively resolve environment variables in config."""
    if isinstance(obj, str):
        return _resolve_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _resolve_config(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_resolve_config(v) for v in obj]
    return obj


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///pazuzu.db"
    echo: bool = False


class ComposeConfig(BaseModel):
    base_image: str | None = None  # prepended as FROM <base_image> when set


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_format: bool = False


class AppConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    compose: ComposeConfig = Field(default_factory=ComposeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file with environment variable resolution."""
    config_path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed config file {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    try:
        return AppConfig.model_validate(_resolve_config(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e
