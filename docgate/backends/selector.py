"""Selection of the storage backend from runtime config and startup settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Final

from ..database import Database
from ..exceptions import DatabaseExistsError, DatabaseNotFoundError, DirectoryCreationError
from ..runtime.store import ConfigStore
from ..utils.config import DatabasePoolSettings, GlobalSettings
from ..utils.logging import setup_logger
from . import get_backend
from .base import BaseBackend, validate_database_name

logger = setup_logger(__name__, context={"component": "backend_selector"})

BACKEND_KEYS: Final[tuple[str, ...]] = ("couchdb.database_dir",)

IN_MEMORY_BACKEND: Final[str] = "memory"


@dataclass(frozen=True)
class BackendConfig:
    """Everything needed to build a :class:`DatabaseFactory`."""

    storage_directory: Path
    implementation: str | None = None
    key_prefix: str | None = None

    @property
    def prefix(self) -> str:
        """String prepended to database names by the backend."""

        if self.key_prefix is not None:
            return self.key_prefix
        return f"{self.storage_directory}{os.sep}"


class DatabaseFactory:
    """
    Opens, creates and destroys databases on one backend instance.

    Factories are immutable once built. A reconfiguration builds a new factory
    instead of repointing this one, so a request holding a factory finishes
    against the storage it started with. Requests take a lease with
    :meth:`acquire`; after :meth:`retire` the backend is closed once the last
    lease is released.
    """

    def __init__(self, config: BackendConfig, backend: BaseBackend) -> None:
        self.config = config
        self.backend = backend
        self._leases = 0
        self._retired = False
        self._closed = False
        self._lease_lock = Lock()

    @classmethod
    def from_config(
        cls,
        config: BackendConfig,
        pool_config: DatabasePoolSettings | None = None,
    ) -> DatabaseFactory:
        backend_class = get_backend(config.implementation)
        return cls(config, backend_class(config.prefix, pool_config=pool_config))

    @property
    def implementation(self) -> str:
        return self.backend.name

    def all_dbs(self) -> list[str]:
        return self.backend.list_databases()

    def exists(self, name: str) -> bool:
        return self.backend.database_exists(validate_database_name(name))

    def open(self, name: str) -> Database:
        if not self.exists(name):
            raise DatabaseNotFoundError("Database does not exist.")
        return Database(name, self.backend)

    def create(self, name: str) -> Database:
        validate_database_name(name)
        with self.backend.write_lock:
            if self.backend.database_exists(name):
                raise DatabaseExistsError("The database could not be created, the file already exists.")
            self.backend.create_database(name)
        logger.info(f"Created database {name}", extra={"status": "created"})
        return Database(name, self.backend)

    def destroy(self, name: str) -> None:
        validate_database_name(name)
        with self.backend.write_lock:
            if not self.backend.database_exists(name):
                raise DatabaseNotFoundError("Database does not exist.")
            self.backend.delete_database(name)
        logger.info(f"Deleted database {name}", extra={"status": "deleted"})

    def describe(self) -> dict[str, Any]:
        return {**self.backend.describe(), "storage_directory": str(self.config.storage_directory)}

    @property
    def in_flight(self) -> int:
        return self._leases

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> bool:
        """Take a lease; returns ``False`` if the factory is already closed."""

        with self._lease_lock:
            if self._closed:
                return False
            self._leases += 1
            return True

    def release(self) -> None:
        with self._lease_lock:
            self._leases -= 1
            close_now = self._retired and self._leases == 0 and not self._closed
            if close_now:
                self._closed = True
        if close_now:
            self._close_backend()

    def retire(self) -> None:
        """Mark the factory as replaced; it closes once no lease remains."""

        with self._lease_lock:
            self._retired = True
            close_now = self._leases == 0 and not self._closed
            if close_now:
                self._closed = True
        if close_now:
            self._close_backend()

    def close(self) -> None:
        with self._lease_lock:
            if self._closed:
                return
            self._closed = True
        self._close_backend()

    def _close_backend(self) -> None:
        self.backend.close()
        logger.info(
            f"Closed {self.implementation} factory with prefix {self.config.prefix}",
            extra={"status": "closed"},
        )


class BackendSelector:
    """Resolve a :class:`BackendConfig` from the store and startup settings."""

    def __init__(self, settings: GlobalSettings) -> None:
        self.settings = settings

    def register_defaults(self, store: ConfigStore) -> None:
        default_dir = self.settings.database_dir or Path.cwd()
        store.register_default("couchdb", "database_dir", str(default_dir))

    def resolve(self, store: ConfigStore) -> BackendConfig:
        """
        Work out the effective backend configuration.

        Raises:
            DirectoryCreationError: If the storage directory cannot be created
        """
        configured = store.get("couchdb", "database_dir")
        if configured is not None and str(configured).strip():
            directory = Path(str(configured))
        elif self.settings.database_dir is not None:
            directory = self.settings.database_dir
        else:
            directory = Path.cwd()

        directory = directory.expanduser().resolve()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(
                f"Unable to create storage directory '{directory}': {e}"
            ) from e

        implementation = self.settings.backend
        if self.settings.in_memory:
            implementation = IN_MEMORY_BACKEND

        return BackendConfig(
            storage_directory=directory,
            implementation=implementation,
            key_prefix=self.settings.key_prefix,
        )

    def build(self, store: ConfigStore) -> DatabaseFactory:
        config = self.resolve(store)
        factory = DatabaseFactory.from_config(config, self.settings.database)
        logger.info(
            f"Built {factory.implementation} factory with prefix {config.prefix}",
            extra={"status": "built"},
        )
        return factory
