"""Runtime configuration endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from ...exceptions import ConfigKeyNotFoundError, InvalidRequestError
from ...runtime.store import ConfigStore
from ..dependencies import get_config_store

router = APIRouter()

_SCALARS = (str, int, float, bool)


@router.get("", summary="All configuration sections")
def get_config(store: ConfigStore = Depends(get_config_store)) -> dict[str, dict[str, Any]]:
    return store.as_dict()


@router.post("/_reload", summary="Reload configuration")
def reload_config(store: ConfigStore = Depends(get_config_store)) -> dict[str, Any]:
    """
    Re-read the configuration file without restarting.

    Every key whose value changed on disk notifies its bindings, exactly as a
    ``PUT`` would.

    Returns:
        dict: Reload status and the identifiers that changed
    """
    changed = store.reload()
    return {"status": "success", "changed": changed}


@router.get("/{section}", summary="One configuration section")
def get_section(
    section: str, store: ConfigStore = Depends(get_config_store)
) -> dict[str, Any]:
    return store.get_section(section)


@router.get("/{section}/{key}", summary="One configuration value")
def get_value(section: str, key: str, store: ConfigStore = Depends(get_config_store)) -> Any:
    value = store.get(section, key)
    if value is None:
        raise ConfigKeyNotFoundError("unknown_config_value")
    return value


@router.put("/{section}/{key}", summary="Set a configuration value")
def put_value(
    section: str,
    key: str,
    value: Any = Body(...),
    store: ConfigStore = Depends(get_config_store),
) -> Any:
    """Set a value and return the previous one (empty string if none)."""

    if "." in section:
        raise InvalidRequestError("Configuration section names must not contain '.'")
    if not isinstance(value, _SCALARS):
        raise InvalidRequestError("Configuration values must be JSON strings or scalars")
    previous = store.set(section, key, value)
    return "" if previous is None else previous


@router.delete("/{section}/{key}", summary="Remove a configuration value")
def delete_value(
    section: str, key: str, store: ConfigStore = Depends(get_config_store)
) -> Any:
    return store.delete(section, key)
