"""Canonical store over a SQLAlchemy database.

Sessions are synchronous; each call runs in a worker thread via
:func:`asyncio.to_thread` so the event loop is never blocked. Driver
errors are re-raised as :class:`~searchspine.core.errors.CanonicalStoreError`.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from searchspine.adapters.orm import (
    CanonicalBase,
    CanonicalRecord,
    create_store_engine,
    store_session_factory,
)
from searchspine.core.entity import ID_FIELD
from searchspine.core.errors import CanonicalStoreError
from searchspine.core.logging import get_logger

logger = get_logger(__name__)


def _as_record(row: CanonicalRecord) -> dict[str, Any]:
    return {**copy.deepcopy(row.data), ID_FIELD: row.id}


class SqlCanonicalStore:
    """CanonicalStore keeping every entity type in ``canonical_records``."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = store_session_factory(engine)

    @classmethod
    def from_url(cls, url: str, *, create_schema: bool = True) -> SqlCanonicalStore:
        store = cls(create_store_engine(url))
        if create_schema:
            store.create_schema()
        return store

    def create_schema(self) -> None:
        CanonicalBase.metadata.create_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    async def _run(self, action: str, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            raise CanonicalStoreError(f"{action} failed: {e}", cause=e) from e

    # ── Sync bodies ──────────────────────────────────────────────────

    def _save(self, entity_type: str, data: dict[str, Any], entity_id: str) -> dict[str, Any]:
        payload = {k: v for k, v in data.items() if k != ID_FIELD}
        with self._sessions() as session, session.begin():
            row = session.get(CanonicalRecord, (entity_type, entity_id))
            if row is None:
                row = CanonicalRecord(entity_type=entity_type, id=entity_id, data=payload)
                session.add(row)
            else:
                row.data = payload
            return _as_record(row)

    def _load(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        with self._sessions() as session:
            row = session.get(CanonicalRecord, (entity_type, entity_id))
            return _as_record(row) if row is not None else None

    def _remove(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        with self._sessions() as session, session.begin():
            row = session.get(CanonicalRecord, (entity_type, entity_id))
            if row is None:
                return None
            record = _as_record(row)
            session.delete(row)
            return record

    def _list_by_ids(self, entity_type: str, ids: list[str]) -> list[dict[str, Any]]:
        if not ids:
            return []
        stmt = select(CanonicalRecord).where(
            CanonicalRecord.entity_type == entity_type,
            CanonicalRecord.id.in_(ids),
        )
        with self._sessions() as session:
            return [_as_record(row) for row in session.scalars(stmt)]

    # ── CanonicalStore ───────────────────────────────────────────────

    async def save(
        self,
        entity_type: str,
        data: dict[str, Any],
        entity_id: str | None = None,
    ) -> dict[str, Any]:
        entity_id = str(entity_id or data.get(ID_FIELD) or uuid.uuid4().hex)
        record = await self._run("save", self._save, entity_type, dict(data), entity_id)
        logger.debug("canonical.saved", entity_type=entity_type, entity_id=entity_id)
        return record

    async def load(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        return await self._run("load", self._load, entity_type, str(entity_id))

    async def remove(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        return await self._run("remove", self._remove, entity_type, str(entity_id))

    async def list_by_ids(self, entity_type: str, ids: Sequence[str]) -> list[dict[str, Any]]:
        return await self._run(
            "list by ids", self._list_by_ids, entity_type, [str(i) for i in ids]
        )
