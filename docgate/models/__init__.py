"""Persistence models for the SQL backends."""

from .base import Base, SQLStore, create_store_engine
from .document import DatabaseRecord, DocumentRecord

__all__ = ["Base", "DatabaseRecord", "DocumentRecord", "SQLStore", "create_store_engine"]
