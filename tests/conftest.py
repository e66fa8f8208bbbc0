"""Pytest configuration - no path manipulation, rely on proper package installation."""

from __future__ import annotations

import base64
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from docgate.api.main import create_app
from docgate.backends.memory_backend import reset_memory_namespaces
from docgate.runtime.store import ConfigStore
from docgate.utils.config import GlobalSettings, get_settings


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Run every test in its own directory with no DOCGATE_ variables set."""

    for name in list(os.environ):
        if name.startswith("DOCGATE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    get_settings(reload=True)
    yield
    reset_memory_namespaces()
    get_settings(reload=True)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(tmp_path: Path, data_dir: Path) -> GlobalSettings:
    """Startup settings pointing at per-test storage and config locations."""
    return GlobalSettings(database_dir=data_dir, config_file=tmp_path / "config.yaml")


@pytest.fixture
def store(settings: GlobalSettings) -> ConfigStore:
    return ConfigStore(settings.config_file)


@pytest.fixture
def make_app(settings: GlobalSettings, store: ConfigStore) -> Callable[..., FastAPI]:
    """Build an app, optionally overriding startup settings."""

    def _make(**overrides: Any) -> FastAPI:
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        return create_app(app_settings, store)

    return _make


@pytest.fixture
def client(make_app: Callable[..., FastAPI]) -> Iterator[TestClient]:
    with TestClient(make_app()) as test_client:
        yield test_client


def _basic_auth_header(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def basic_auth() -> Callable[[str, str], dict[str, str]]:
    """Build an Authorization header for the given credentials."""
    return _basic_auth_header
