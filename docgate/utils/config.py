"""Startup settings and YAML helpers for docgate."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def load_yaml_config(config_path: str | Path) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If file not found or invalid YAML
    """
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping of sections"
        )
    return config


class DatabasePoolSettings(BaseModel):
    """Connection pooling configuration for the SQL backend engine."""

    model_config = ConfigDict(extra="forbid")

    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    recycle_seconds: int = Field(default=1800, ge=0)
    pre_ping: bool = True


class GlobalSettings(BaseSettings):
    """Static startup settings sourced from environment variables and CLI flags.

    These never change while the process runs. Anything that may change at
    runtime lives in the :class:`~docgate.runtime.store.ConfigStore` instead.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCGATE_",
        env_nested_delimiter="__",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=5984, ge=0, le=65535)
    database_dir: Path | None = None
    in_memory: bool = False
    backend: str | None = None
    key_prefix: str | None = None
    username: str | None = None
    password: str | None = None
    config_file: Path | None = Path("config.yaml")
    log_level: str = "INFO"
    database: DatabasePoolSettings = DatabasePoolSettings()

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Ensure log level values are uppercase for logging config."""

        return value.upper()

    @field_validator("database_dir", "config_file", mode="before")
    @classmethod
    def _expand_paths(cls, value: Any) -> Any:
        """Allow string paths and expand user markers."""

        if isinstance(value, Path):
            return value
        if isinstance(value, str):
            if not value.strip():
                return None
            return Path(value).expanduser()
        return value

    @field_validator("backend", "key_prefix", "username", "password", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("backend")
    @classmethod
    def _normalize_backend(cls, value: str | None) -> str | None:
        if value is None or ":" in value:
            return value
        return value.strip().lower()


@lru_cache(maxsize=1)
def _get_settings_cached() -> GlobalSettings:
    return GlobalSettings()


def get_settings(*, reload: bool = False) -> GlobalSettings:
    """Return cached settings, optionally forcing a reload."""

    if reload:
        _get_settings_cached.cache_clear()
    return _get_settings_cached()
