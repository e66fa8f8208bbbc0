"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from ..backends.selector import DatabaseFactory
from ..gateway import Gateway
from ..runtime.store import ConfigStore


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_config_store(request: Request) -> ConfigStore:
    return request.app.state.gateway.store


def get_database_factory(request: Request) -> DatabaseFactory:
    """Return the factory captured when the request entered the pipeline."""

    factory = getattr(request.state, "database_factory", None)
    if factory is None:
        factory = request.app.state.gateway.snapshot().database_factory
    return factory
