"""Base class for all storage backends."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, ClassVar

from ..exceptions import InvalidRequestError
from ..utils.config import DatabasePoolSettings

DATABASE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_$()+-]*$")

# Served by the gateway itself at the top level.
RESERVED_DATABASE_NAMES = frozenset({"health", "metrics"})


def validate_database_name(name: str) -> str:
    """Reject names that are not valid database names."""

    if not DATABASE_NAME_PATTERN.match(name):
        raise InvalidRequestError(
            f"Name: '{name}'. Only lowercase characters (a-z), digits (0-9), and any of "
            "the characters _, $, (, ), +, and - are allowed. Must begin with a letter."
        )
    if name in RESERVED_DATABASE_NAMES:
        raise InvalidRequestError(f"Name: '{name}' is reserved by the server.")
    return name


@dataclass(frozen=True)
class StoredDocument:
    """One revision of a document as kept by a backend."""

    doc_id: str
    rev: str
    body: dict[str, Any] = field(default_factory=dict)
    deleted: bool = False

    def to_json(self) -> dict[str, Any]:
        payload = dict(self.body)
        payload["_id"] = self.doc_id
        payload["_rev"] = self.rev
        if self.deleted:
            payload["_deleted"] = True
        return payload


class BaseBackend(ABC):
    """
    Abstract base class for document storage backends.

    A backend stores the latest revision of each document per database and
    knows nothing about revision rules; :class:`~docgate.database.Database`
    enforces those while holding :attr:`write_lock`.
    """

    name: ClassVar[str] = "base"

    def __init__(
        self,
        prefix: str,
        *,
        pool_config: DatabasePoolSettings | None = None,
    ) -> None:
        """
        Initialize the backend.

        Args:
            prefix: String prepended to every database name (a directory path
                for file backends, a connection URL for remote ones)
            pool_config: Connection pool settings for backends that pool
        """
        self.prefix = prefix
        self.pool_config = pool_config
        self.write_lock = RLock()

    @abstractmethod
    def list_databases(self) -> list[str]:
        """Return the names of all databases, sorted."""

    @abstractmethod
    def database_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def create_database(self, name: str) -> None:
        pass

    @abstractmethod
    def delete_database(self, name: str) -> None:
        pass

    @abstractmethod
    def read_document(self, database: str, doc_id: str) -> StoredDocument | None:
        """Return the latest revision of a document, including tombstones."""

    @abstractmethod
    def write_document(self, database: str, document: StoredDocument) -> None:
        """Store ``document`` as the latest revision."""

    @abstractmethod
    def iter_documents(self, database: str) -> Iterator[StoredDocument]:
        """Yield every stored document ordered by id, including tombstones."""

    def describe(self) -> dict[str, Any]:
        return {"backend": self.name, "prefix": self.prefix}

    def close(self) -> None:
        """Release any resources held by the backend."""
