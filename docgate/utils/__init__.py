"""Utilities package initialization."""
from .config import (
    DatabasePoolSettings,
    GlobalSettings,
    get_settings,
    load_yaml_config,
)
from .logging import set_log_level, setup_logger

__all__ = [
    "DatabasePoolSettings",
    "GlobalSettings",
    "get_settings",
    "load_yaml_config",
    "set_log_level",
    "setup_logger",
]
