"""Volatile in-process backend; data is lost when the process exits."""

from __future__ import annotations

from collections.abc import Iterator
from threading import Lock, RLock
from typing import Any

from .base import BaseBackend, StoredDocument

# Namespaces are keyed by prefix so a rebuilt factory pointing at the same
# prefix sees the same data, the way a file backend sees the same directory.
_NAMESPACES: dict[str, dict[str, dict[str, StoredDocument]]] = {}
_NAMESPACE_WRITE_LOCKS: dict[str, RLock] = {}
_NAMESPACES_LOCK = Lock()


def reset_memory_namespaces() -> None:
    """Drop every in-memory database (useful for testing)."""

    with _NAMESPACES_LOCK:
        _NAMESPACES.clear()
        _NAMESPACE_WRITE_LOCKS.clear()


class MemoryBackend(BaseBackend):
    name = "memory"

    def __init__(self, prefix: str, **options: Any) -> None:
        super().__init__(prefix, **options)
        with _NAMESPACES_LOCK:
            self._databases = _NAMESPACES.setdefault(prefix, {})
            self.write_lock = _NAMESPACE_WRITE_LOCKS.setdefault(prefix, RLock())

    def list_databases(self) -> list[str]:
        return sorted(self._databases)

    def database_exists(self, name: str) -> bool:
        return name in self._databases

    def create_database(self, name: str) -> None:
        self._databases.setdefault(name, {})

    def delete_database(self, name: str) -> None:
        self._databases.pop(name, None)

    def read_document(self, database: str, doc_id: str) -> StoredDocument | None:
        return self._databases.get(database, {}).get(doc_id)

    def write_document(self, database: str, document: StoredDocument) -> None:
        self._databases.setdefault(database, {})[document.doc_id] = document

    def iter_documents(self, database: str) -> Iterator[StoredDocument]:
        documents = self._databases.get(database, {})
        for doc_id in sorted(documents):
            yield documents[doc_id]
