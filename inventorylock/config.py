#!/usr/bin/env python3
"""
Configuration management for inventorylock.

This module handles loading, merging, and validating configuration from:
1. Default values
2. User config file (~/.invlock/config.toml)
3. Environment variables (prefixed with INVLOCK_)
4. Explicit overrides (CLI options and --set key=value pairs)
"""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type, Union

import tomli
from pydantic import BaseModel, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from inventorylock.errors import ConfigError


DEFAULT_CONFIG_DIR = Path.home() / ".invlock"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"


class StorageBackend(str, Enum):
    """Supported storage backends."""
    MEMORY = "memory"
    SQLITE = "sqlite"


class LogLevel(str, Enum):
    """Log levels for application logging."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RaceConfig(BaseModel):
    """Defaults for the concurrent writer demonstration."""
    writers: int = 2
    think_time: float = 0.2

    @field_validator("writers")
    @classmethod
    def validate_writers(cls, v: int) -> int:
        """Ensure at least one writer takes part."""
        if v < 1:
            raise ValueError(f"Writers must be a positive integer, got {v}")
        return v

    @field_validator("think_time")
    @classmethod
    def validate_think_time(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Think time cannot be negative, got {v}")
        return v


class InventoryLockConfig(BaseSettings):
    """Main configuration model for inventorylock."""
    # Storage settings
    backend: StorageBackend = StorageBackend.SQLITE
    db_path: Path = DEFAULT_CONFIG_DIR / "store.db"
    echo_sql: bool = False

    # Display settings
    color_output: bool = True

    # Logging settings
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[Path] = None

    race: RaceConfig = RaceConfig()

    model_config = SettingsConfigDict(
        env_prefix="INVLOCK_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="forbid",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # load_config merges the environment itself, after the TOML file
        return (init_settings,)


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with values from override taking precedence.

    If both values are dictionaries, they are deep-merged recursively.
    Otherwise, the value from override is used.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_toml_config(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    Returns an empty dict if the file doesn't exist.

    Raises:
        ConfigError: If the file exists but cannot be parsed
    """
    path = Path(file_path).expanduser()
    if not path.exists():
        return {}

    try:
        with open(path, "rb") as f:
            return tomli.load(f)
    except (tomli.TOMLDecodeError, PermissionError, IsADirectoryError) as e:
        raise ConfigError(f"Error loading config file {path}: {e}") from e


def _set_nested(target: Dict[str, Any], parts: Iterable[str], value: Any) -> None:
    parts = list(parts)
    current = target
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def env_to_config_dict(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Convert environment variables with INVLOCK_ prefix to a nested config dictionary.

    Example: INVLOCK_RACE__WRITERS=8 becomes {'race': {'writers': '8'}}
    """
    environ = os.environ if environ is None else environ
    prefix = InventoryLockConfig.model_config["env_prefix"]
    delimiter = InventoryLockConfig.model_config["env_nested_delimiter"]
    config_dict: Dict[str, Any] = {}

    for key, value in environ.items():
        if not key.upper().startswith(prefix):
            continue
        config_key = key[len(prefix):].lower()
        # Logging switches are read directly by inventorylock.logging
        if config_key in ("debug", "loglevel"):
            continue
        _set_nested(config_dict, config_key.split(delimiter), value)

    return config_dict


def overrides_to_config_dict(overrides: Iterable[str]) -> Dict[str, Any]:
    """
    Parse overrides in the format key=value or nested.key=value.

    Example: race.writers=8 becomes {'race': {'writers': '8'}}
    """
    config_dict: Dict[str, Any] = {}
    for item in overrides:
        if "=" not in item:
            raise ConfigError(f"Invalid override '{item}', expected key=value")
        key, value = item.split("=", 1)
        _set_nested(config_dict, key.strip().lower().split("."), value.strip())
    return config_dict


def load_config(
    config_file: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InventoryLockConfig:
    """
    Load and merge configuration from all sources.

    Order of precedence (highest to lowest):
    1. Explicit overrides
    2. Environment variables
    3. User config file
    4. Default values from InventoryLockConfig

    Raises:
        ConfigError: If configuration is invalid or contains unknown fields.
    """
    file_config = load_toml_config(config_file or DEFAULT_CONFIG_FILE)

    merged: Dict[str, Any] = {}
    merged = deep_merge(merged, file_config)
    merged = deep_merge(merged, env_to_config_dict(environ))
    merged = deep_merge(merged, {k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return InventoryLockConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
