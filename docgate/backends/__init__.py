"""Backend registry for the storage implementations a factory can use."""

from importlib import import_module

from ..exceptions import BackendNotFoundError
from .base import BaseBackend, StoredDocument, validate_database_name
from .memory_backend import MemoryBackend
from .sql_backend import SQLBackend, SQLiteBackend

DEFAULT_BACKEND = "sqlite"

# Backend registry - register new backends here
_BACKEND_REGISTRY: dict[str, type[BaseBackend]] = {}


def register_backend(name: str, backend_class: type[BaseBackend]) -> None:
    """
    Register a new backend class.

    Args:
        name: Unique identifier for the backend
        backend_class: Backend class to register
    """
    _BACKEND_REGISTRY[name] = backend_class


def _import_backend(path: str) -> type[BaseBackend]:
    module_name, _, attribute = path.partition(":")
    try:
        backend_class = getattr(import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise BackendNotFoundError(f"Backend '{path}' could not be imported: {e}") from e
    if not (isinstance(backend_class, type) and issubclass(backend_class, BaseBackend)):
        raise BackendNotFoundError(f"Backend '{path}' is not a BaseBackend subclass.")
    return backend_class


def get_backend(name: str | None) -> type[BaseBackend]:
    """
    Get a backend class by name.

    Args:
        name: Registered identifier, ``package.module:ClassName`` import path,
            or ``None`` for the default backend

    Returns:
        Backend class

    Raises:
        BackendNotFoundError: If backend is not registered or cannot be imported
    """
    if name is None:
        name = DEFAULT_BACKEND
    if ":" in name and "/" not in name:
        return _import_backend(name)
    if name not in _BACKEND_REGISTRY:
        available = sorted(_BACKEND_REGISTRY.keys())
        available_display = ", ".join(available) if available else "none"
        raise BackendNotFoundError(
            f"Backend '{name}' is not registered. Available backends: {available_display}."
        )
    return _BACKEND_REGISTRY[name]


def list_backends() -> list[str]:
    """Return list of registered backend names."""
    return list(_BACKEND_REGISTRY.keys())


register_backend("sqlite", SQLiteBackend)
register_backend("sql", SQLBackend)
register_backend("memory", MemoryBackend)

__all__ = [
    "BaseBackend",
    "DEFAULT_BACKEND",
    "StoredDocument",
    "get_backend",
    "list_backends",
    "register_backend",
    "validate_database_name",
]
