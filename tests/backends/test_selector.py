"""Tests for backend selection and database factories."""

from __future__ import annotations

from pathlib import Path

import pytest

from docgate.backends.selector import BackendConfig, BackendSelector, DatabaseFactory
from docgate.exceptions import (
    DatabaseExistsError,
    DatabaseNotFoundError,
    DirectoryCreationError,
    InvalidRequestError,
)
from docgate.runtime.store import ConfigStore
from docgate.utils.config import GlobalSettings


def test_config_value_wins_over_startup_directory(tmp_path: Path) -> None:
    store = ConfigStore()
    store.set("couchdb", "database_dir", str(tmp_path / "from-config"))
    selector = BackendSelector(GlobalSettings(database_dir=tmp_path / "from-cli"))

    config = selector.resolve(store)

    assert config.storage_directory == (tmp_path / "from-config").resolve()
    assert config.storage_directory.is_dir()


def test_startup_directory_used_without_config(tmp_path: Path) -> None:
    selector = BackendSelector(GlobalSettings(database_dir=tmp_path / "nested" / "dir"))

    config = selector.resolve(ConfigStore())

    assert config.storage_directory == (tmp_path / "nested" / "dir").resolve()
    assert config.storage_directory.is_dir()


def test_current_directory_is_last_resort(tmp_path: Path) -> None:
    config = BackendSelector(GlobalSettings()).resolve(ConfigStore())

    assert config.storage_directory == tmp_path.resolve()


def test_relative_directory_is_made_absolute(tmp_path: Path) -> None:
    store = ConfigStore()
    store.set("couchdb", "database_dir", "relative")

    config = BackendSelector(GlobalSettings()).resolve(store)

    assert config.storage_directory.is_absolute()
    assert config.storage_directory == (tmp_path / "relative").resolve()


def test_resolve_is_idempotent(tmp_path: Path) -> None:
    selector = BackendSelector(GlobalSettings(database_dir=tmp_path / "data"))
    store = ConfigStore()

    assert selector.resolve(store) == selector.resolve(store)


def test_unwritable_directory_raises(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    store = ConfigStore()
    store.set("couchdb", "database_dir", str(blocker / "sub"))

    with pytest.raises(DirectoryCreationError):
        BackendSelector(GlobalSettings()).resolve(store)


def test_static_backend_and_prefix_override(tmp_path: Path) -> None:
    settings = GlobalSettings(
        database_dir=tmp_path, backend="memory", key_prefix="tenant-a/"
    )

    config = BackendSelector(settings).resolve(ConfigStore())

    assert config.implementation == "memory"
    assert config.prefix == "tenant-a/"


def test_in_memory_wins_over_alternate_backend(tmp_path: Path) -> None:
    settings = GlobalSettings(database_dir=tmp_path, backend="sql", in_memory=True)

    factory = BackendSelector(settings).build(ConfigStore())

    assert factory.implementation == "memory"


def test_default_prefix_is_directory_with_separator(tmp_path: Path) -> None:
    config = BackendConfig(storage_directory=tmp_path)

    assert config.prefix.startswith(str(tmp_path))
    assert config.prefix.endswith(("/", "\\"))


def test_register_defaults_exposes_directory(tmp_path: Path) -> None:
    store = ConfigStore()
    BackendSelector(GlobalSettings(database_dir=tmp_path)).register_defaults(store)

    assert store.get("couchdb", "database_dir") == str(tmp_path)
    assert not store.has_explicit("couchdb", "database_dir")


class TestDatabaseFactory:
    @pytest.fixture
    def factory(self, tmp_path: Path) -> DatabaseFactory:
        return DatabaseFactory.from_config(
            BackendConfig(storage_directory=tmp_path, implementation="memory")
        )

    def test_create_open_destroy(self, factory: DatabaseFactory) -> None:
        factory.create("alpha")

        assert factory.all_dbs() == ["alpha"]
        assert factory.open("alpha").info()["doc_count"] == 0

        factory.destroy("alpha")

        assert factory.all_dbs() == []
        with pytest.raises(DatabaseNotFoundError):
            factory.open("alpha")

    def test_create_twice_raises(self, factory: DatabaseFactory) -> None:
        factory.create("alpha")

        with pytest.raises(DatabaseExistsError):
            factory.create("alpha")

    def test_destroy_missing_raises(self, factory: DatabaseFactory) -> None:
        with pytest.raises(DatabaseNotFoundError):
            factory.destroy("ghost")

    @pytest.mark.parametrize(
        "name", ["Upper", "_private", "1digit", "a/b", "../etc", "health", "metrics"]
    )
    def test_invalid_names_rejected(self, factory: DatabaseFactory, name: str) -> None:
        with pytest.raises(InvalidRequestError):
            factory.create(name)

    def test_retired_factory_closes_after_last_lease(self, factory: DatabaseFactory) -> None:
        assert factory.acquire()
        assert factory.acquire()

        factory.retire()
        assert not factory.closed

        factory.release()
        assert not factory.closed

        factory.release()
        assert factory.closed
        assert factory.in_flight == 0

    def test_idle_factory_closes_when_retired(self, factory: DatabaseFactory) -> None:
        factory.retire()

        assert factory.closed
        assert not factory.acquire()

    def test_live_factory_stays_open_between_leases(self, factory: DatabaseFactory) -> None:
        assert factory.acquire()
        factory.release()

        assert not factory.closed

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        closes = []
        factory = DatabaseFactory.from_config(
            BackendConfig(storage_directory=tmp_path, implementation="memory")
        )
        factory.backend.close = lambda: closes.append(1)

        factory.retire()
        factory.close()

        assert closes == [1]
