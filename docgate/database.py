"""Document operations with revision checking on top of a storage backend."""

from __future__ import annotations

import hashlib
import json
import uuid
from typing import Any

from .backends.base import BaseBackend, StoredDocument
from .exceptions import DocumentConflictError, DocumentNotFoundError, InvalidRequestError


def next_revision(previous: str | None, body: dict[str, Any], deleted: bool = False) -> str:
    """Return the revision following ``previous`` for the given content."""

    generation = int(previous.split("-", 1)[0]) + 1 if previous else 1
    digest = hashlib.md5(
        json.dumps([previous, deleted, body], sort_keys=True, default=str).encode("utf-8"),
        usedforsecurity=False,
    ).hexdigest()
    return f"{generation}-{digest}"


def _strip_reserved(doc: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in doc.items() if key not in ("_id", "_rev", "_deleted")}


class Database:
    """A single named database opened through a :class:`DatabaseFactory`."""

    def __init__(self, name: str, backend: BaseBackend) -> None:
        self.name = name
        self._backend = backend

    def info(self) -> dict[str, Any]:
        doc_count = doc_del_count = 0
        for stored in self._backend.iter_documents(self.name):
            if stored.deleted:
                doc_del_count += 1
            else:
                doc_count += 1
        return {
            "db_name": self.name,
            "doc_count": doc_count,
            "doc_del_count": doc_del_count,
            "backend": self._backend.name,
        }

    def get(self, doc_id: str) -> dict[str, Any]:
        stored = self._backend.read_document(self.name, doc_id)
        if stored is None:
            raise DocumentNotFoundError("missing")
        if stored.deleted:
            raise DocumentNotFoundError("deleted")
        return stored.to_json()

    def put(self, doc: dict[str, Any], doc_id: str | None = None, rev: str | None = None) -> dict[str, Any]:
        """
        Create or update a document.

        Args:
            doc: Document body; ``_id`` and ``_rev`` are honoured when present
            doc_id: Id from the URL, takes precedence over ``doc['_id']``
            rev: Revision from the query string, takes precedence over ``doc['_rev']``

        Raises:
            InvalidRequestError: If no id is available or ids disagree
            DocumentConflictError: If ``rev`` is not the current revision
        """
        if not isinstance(doc, dict):
            raise InvalidRequestError("Document must be a JSON object")

        body_id = doc.get("_id")
        if doc_id is not None and body_id is not None and body_id != doc_id:
            raise InvalidRequestError("Document id must match the URL")
        doc_id = doc_id or body_id
        if not doc_id or not isinstance(doc_id, str):
            raise InvalidRequestError("Document id is required")
        if doc_id.startswith("_"):
            raise InvalidRequestError("Only reserved document ids may start with underscore.")

        rev = rev or doc.get("_rev")
        deleted = bool(doc.get("_deleted", False))
        body = _strip_reserved(doc)

        with self._backend.write_lock:
            current = self._backend.read_document(self.name, doc_id)
            if current is None or current.deleted:
                if rev is not None and (current is None or rev != current.rev):
                    raise DocumentConflictError("Document update conflict.")
            elif rev != current.rev:
                raise DocumentConflictError("Document update conflict.")

            previous_rev = current.rev if current is not None else None
            new_rev = next_revision(previous_rev, body, deleted)
            self._backend.write_document(
                self.name,
                StoredDocument(doc_id=doc_id, rev=new_rev, body=body, deleted=deleted),
            )
        return {"ok": True, "id": doc_id, "rev": new_rev}

    def post(self, doc: dict[str, Any]) -> dict[str, Any]:
        """Create a document, generating an id when the body has none."""

        if not isinstance(doc, dict):
            raise InvalidRequestError("Document must be a JSON object")
        doc_id = doc.get("_id") or uuid.uuid4().hex
        return self.put(doc, doc_id=doc_id)

    def remove(self, doc_id: str, rev: str | None) -> dict[str, Any]:
        if not rev:
            raise DocumentConflictError("Document update conflict.")

        with self._backend.write_lock:
            current = self._backend.read_document(self.name, doc_id)
            if current is None or current.deleted:
                raise DocumentNotFoundError("deleted" if current is not None else "missing")
            return self.put({"_deleted": True}, doc_id=doc_id, rev=rev)

    def all_docs(self, include_docs: bool = False) -> dict[str, Any]:
        rows = []
        for stored in self._backend.iter_documents(self.name):
            if stored.deleted:
                continue
            row: dict[str, Any] = {
                "id": stored.doc_id,
                "key": stored.doc_id,
                "value": {"rev": stored.rev},
            }
            if include_docs:
                row["doc"] = stored.to_json()
            rows.append(row)
        return {"total_rows": len(rows), "offset": 0, "rows": rows}
