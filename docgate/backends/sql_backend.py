"""SQLAlchemy-backed storage: one SQLite file per database, or one shared URL."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from threading import Lock
from typing import Any

from sqlalchemy import delete, select

from ..models.base import SQLStore
from ..models.document import DatabaseRecord, DocumentRecord
from ..utils.logging import setup_logger
from .base import BaseBackend, StoredDocument

logger = setup_logger(__name__, context={"component": "sql_backend"})


def _to_stored(record: DocumentRecord) -> StoredDocument:
    return StoredDocument(
        doc_id=record.doc_id,
        rev=record.rev,
        body=dict(record.body or {}),
        deleted=record.deleted,
    )


def _read(store: SQLStore, database: str, doc_id: str) -> StoredDocument | None:
    with store.session_scope() as session:
        record = session.get(DocumentRecord, (database, doc_id))
        return _to_stored(record) if record is not None else None


def _write(store: SQLStore, database: str, document: StoredDocument) -> None:
    with store.session_scope() as session:
        record = session.get(DocumentRecord, (database, document.doc_id))
        if record is None:
            record = DocumentRecord(database=database, doc_id=document.doc_id)
            session.add(record)
        record.rev = document.rev
        record.deleted = document.deleted
        record.body = dict(document.body)


def _iterate(store: SQLStore, database: str) -> Iterator[StoredDocument]:
    with store.session_scope() as session:
        records = session.scalars(
            select(DocumentRecord)
            .where(DocumentRecord.database == database)
            .order_by(DocumentRecord.doc_id)
        ).all()
        documents = [_to_stored(record) for record in records]
    yield from documents


class SQLiteBackend(BaseBackend):
    """
    Default on-disk backend.

    Each database lives in its own SQLite file at ``<prefix><name>.sqlite``;
    with a directory prefix that is one file per database in the directory.
    """

    name = "sqlite"
    suffix = ".sqlite"

    def __init__(self, prefix: str, **options: Any) -> None:
        super().__init__(prefix, **options)
        self._stores: dict[str, SQLStore] = {}
        self._stores_lock = Lock()

    def _path_for(self, name: str) -> Path:
        return Path(f"{self.prefix}{name}{self.suffix}")

    def _store(self, name: str) -> SQLStore:
        with self._stores_lock:
            store = self._stores.get(name)
            if store is None:
                path = self._path_for(name)
                path.parent.mkdir(parents=True, exist_ok=True)
                store = SQLStore(f"sqlite:///{path}")
                self._stores[name] = store
            return store

    def list_databases(self) -> list[str]:
        prefix_path = Path(self.prefix)
        # A prefix ending in a separator names a directory, otherwise a file stem.
        if self.prefix.endswith(("/", "\\")):
            directory, stem = prefix_path, ""
        else:
            directory, stem = prefix_path.parent, prefix_path.name
        if not directory.is_dir():
            return []

        names = []
        for path in directory.glob(f"{stem}*{self.suffix}"):
            name = path.name[len(stem) : -len(self.suffix)]
            if name:
                names.append(name)
        return sorted(names)

    def database_exists(self, name: str) -> bool:
        return self._path_for(name).exists()

    def create_database(self, name: str) -> None:
        store = self._store(name)
        with store.session_scope() as session:
            if session.get(DatabaseRecord, name) is None:
                session.add(DatabaseRecord(name=name))

    def delete_database(self, name: str) -> None:
        with self._stores_lock:
            store = self._stores.pop(name, None)
        if store is not None:
            store.dispose()
        self._path_for(name).unlink(missing_ok=True)

    def read_document(self, database: str, doc_id: str) -> StoredDocument | None:
        return _read(self._store(database), database, doc_id)

    def write_document(self, database: str, document: StoredDocument) -> None:
        _write(self._store(database), database, document)

    def iter_documents(self, database: str) -> Iterator[StoredDocument]:
        return _iterate(self._store(database), database)

    def close(self) -> None:
        with self._stores_lock:
            stores = list(self._stores.values())
            self._stores.clear()
        for store in stores:
            store.dispose()


class SQLBackend(BaseBackend):
    """
    Backend addressed by a SQLAlchemy URL instead of a directory.

    The key prefix is the database URL (for example
    ``postgresql://user@host/docs``); every database is a set of rows in the
    shared ``documents`` table.
    """

    name = "sql"

    def __init__(self, prefix: str, **options: Any) -> None:
        super().__init__(prefix, **options)
        self._store = SQLStore(prefix, self.pool_config)
        logger.info(f"Connected SQL backend at {self._store.engine.url!r}")

    def list_databases(self) -> list[str]:
        with self._store.session_scope() as session:
            return list(session.scalars(select(DatabaseRecord.name).order_by(DatabaseRecord.name)))

    def database_exists(self, name: str) -> bool:
        with self._store.session_scope() as session:
            return session.get(DatabaseRecord, name) is not None

    def create_database(self, name: str) -> None:
        with self._store.session_scope() as session:
            if session.get(DatabaseRecord, name) is None:
                session.add(DatabaseRecord(name=name))

    def delete_database(self, name: str) -> None:
        with self._store.session_scope() as session:
            session.execute(delete(DocumentRecord).where(DocumentRecord.database == name))
            session.execute(delete(DatabaseRecord).where(DatabaseRecord.name == name))

    def read_document(self, database: str, doc_id: str) -> StoredDocument | None:
        return _read(self._store, database, doc_id)

    def write_document(self, database: str, document: StoredDocument) -> None:
        _write(self._store, database, document)

    def iter_documents(self, database: str) -> Iterator[StoredDocument]:
        return _iterate(self._store, database)

    def close(self) -> None:
        self._store.dispose()
