"""Database and document endpoints served from the captured factory."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from ... import __version__
from ...backends.selector import DatabaseFactory
from ..dependencies import get_database_factory

router = APIRouter()


@router.get("/", summary="Server welcome")
def welcome(factory: DatabaseFactory = Depends(get_database_factory)) -> dict[str, Any]:
    return {"docgate": "Welcome", "version": __version__, "backend": factory.implementation}


@router.get("/_all_dbs", summary="List databases")
def all_dbs(factory: DatabaseFactory = Depends(get_database_factory)) -> list[str]:
    return factory.all_dbs()


@router.put("/{db}", status_code=status.HTTP_201_CREATED, summary="Create database")
def create_database(
    db: str, factory: DatabaseFactory = Depends(get_database_factory)
) -> dict[str, Any]:
    factory.create(db)
    return {"ok": True}


@router.get("/{db}", summary="Database information")
def database_info(
    db: str, factory: DatabaseFactory = Depends(get_database_factory)
) -> dict[str, Any]:
    return factory.open(db).info()


@router.delete("/{db}", summary="Delete database")
def delete_database(
    db: str, factory: DatabaseFactory = Depends(get_database_factory)
) -> dict[str, Any]:
    factory.destroy(db)
    return {"ok": True}


@router.post("/{db}", status_code=status.HTTP_201_CREATED, summary="Create document")
def post_document(
    db: str,
    doc: Any = Body(...),
    factory: DatabaseFactory = Depends(get_database_factory),
) -> dict[str, Any]:
    return factory.open(db).post(doc)


@router.get("/{db}/_all_docs", summary="List documents")
def all_docs(
    db: str,
    include_docs: bool = Query(False),
    factory: DatabaseFactory = Depends(get_database_factory),
) -> dict[str, Any]:
    return factory.open(db).all_docs(include_docs=include_docs)


@router.get("/{db}/{doc_id}", summary="Fetch document")
def get_document(
    db: str, doc_id: str, factory: DatabaseFactory = Depends(get_database_factory)
) -> dict[str, Any]:
    return factory.open(db).get(doc_id)


@router.put("/{db}/{doc_id}", status_code=status.HTTP_201_CREATED, summary="Store document")
def put_document(
    db: str,
    doc_id: str,
    doc: Any = Body(...),
    rev: str | None = Query(None),
    factory: DatabaseFactory = Depends(get_database_factory),
) -> dict[str, Any]:
    return factory.open(db).put(doc, doc_id=doc_id, rev=rev)


@router.delete("/{db}/{doc_id}", summary="Delete document")
def delete_document(
    db: str,
    doc_id: str,
    rev: str | None = Query(None),
    factory: DatabaseFactory = Depends(get_database_factory),
) -> dict[str, Any]:
    return factory.open(db).remove(doc_id, rev)
