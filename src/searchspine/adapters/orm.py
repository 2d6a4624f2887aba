"""SQLAlchemy engine factory and the canonical records table.

Uses SQLAlchemy 2.0 ``DeclarativeBase``. Records of every entity type
share one table; the payload is a JSON column so the store does not need a
schema per type.
"""

from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, create_engine, event, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool


class CanonicalBase(DeclarativeBase):
    """Declarative base for canonical store tables."""

    type_annotation_map = {
        str: String(255),
        dict: JSON,
        datetime.datetime: DateTime,
    }


class CanonicalRecord(CanonicalBase):
    """One canonical record, addressed by ``(entity_type, id)``."""

    __tablename__ = "canonical_records"

    entity_type: Mapped[str] = mapped_column(primary_key=True)
    id: Mapped[str] = mapped_column(primary_key=True)
    data: Mapped[dict] = mapped_column(nullable=False, default=dict)
    created_at: Mapped[datetime.datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime | None] = mapped_column(
        nullable=True, server_default=func.now(), onupdate=func.now()
    )


def create_store_engine(url: str = "sqlite:///searchspine.db", *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    In-memory SQLite shares a single connection so worker threads see the
    same database.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)

        engine = create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return engine

    return create_engine(url, echo=echo, **kwargs)


def store_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a ``sessionmaker`` with ``expire_on_commit=False``."""
    return sessionmaker(bind=engine, expire_on_commit=False)
