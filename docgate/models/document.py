"""SQLAlchemy model definitions for document persistence."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class DatabaseRecord(Base):
    """A named database."""

    __tablename__ = "databases"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DatabaseRecord name={self.name}>"


class DocumentRecord(Base):
    """Latest revision of a document within a database."""

    __tablename__ = "documents"

    database: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("databases.name", ondelete="CASCADE"),
        primary_key=True,
    )
    doc_id: Mapped[str] = mapped_column(String(1024), primary_key=True)
    rev: Mapped[str] = mapped_column(String(64), nullable=False)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    body: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        """Return a developer-friendly string representation."""

        return f"<DocumentRecord db={self.database} id={self.doc_id} rev={self.rev}>"
