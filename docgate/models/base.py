"""SQLAlchemy base declarations and engine helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ..utils.config import DatabasePoolSettings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


def create_store_engine(
    database_url: str,
    pool_config: DatabasePoolSettings | None = None,
) -> Engine:
    """Instantiate an engine, applying pool settings to non-SQLite URLs."""

    connect_args: dict[str, object] = {}
    pool_kwargs: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    else:
        pool_config = pool_config or DatabasePoolSettings()
        pool_kwargs = {
            "pool_size": pool_config.pool_size,
            "max_overflow": pool_config.max_overflow,
            "pool_timeout": pool_config.timeout,
            "pool_pre_ping": pool_config.pre_ping,
        }
        if pool_config.recycle_seconds > 0:
            pool_kwargs["pool_recycle"] = pool_config.recycle_seconds

    return create_engine(
        database_url,
        echo=False,
        future=True,
        connect_args=connect_args,
        **pool_kwargs,
    )


class SQLStore:
    """An engine, its session factory and the document tables it holds."""

    def __init__(
        self,
        database_url: str,
        pool_config: DatabasePoolSettings | None = None,
    ) -> None:
        # Imported for its side effect of registering the mapped tables.
        from . import document  # noqa: F401

        self.database_url = database_url
        self.engine = create_store_engine(database_url, pool_config)
        Base.metadata.create_all(bind=self.engine)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:  # pragma: no cover - ensure rollback on any failure
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
