"""
Capability protocols consumed by search-spine.

The service never talks to a concrete client directly. It depends on two
structural contracts: the search engine and the canonical record store.
Adapters in :mod:`searchspine.adapters` satisfy them; tests can pass any
object with the same shape.

Manifesto:
    - **Decoupling:** components depend on shape, not implementation
    - **Testability:** in-memory doubles satisfy the same protocol
    - **Injection:** handles are passed to constructors, never looked up

Architecture:
    ::

        SearchEngine                      CanonicalStore
        ├── ping(timeout)                 ├── save(type, data, id)
        ├── index_exists(index)           ├── load(type, id)
        ├── create_index(index)           ├── remove(type, id)
        ├── delete_index(index)           └── list_by_ids(type, ids)
        ├── put_mapping(index, type, properties)
        ├── index_document(index, type, id, body, refresh)
        ├── get_document(index, type, id)
        ├── delete_document(index, type, id, refresh)
        ├── search(index, body, type)
        └── close()

Tags:
    protocol, search-engine, canonical-store, async, contracts
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SearchEngine(Protocol):
    """
    Search engine capability. ASYNC.

    Documents are addressed by ``(index, doc_type, doc_id)``: the same id
    under two types names two documents. ``search`` returns the engine's
    raw response body; each hit carries the document's id field and type
    tag in ``_source``. All other failures are raised as
    :class:`~searchspine.core.errors.EngineError`.
    """

    async def ping(self, *, timeout: float | None = None) -> bool:
        """Return ``True`` if the engine answered."""
        ...

    async def index_exists(self, index: str) -> bool:
        ...

    async def create_index(self, index: str) -> bool:
        """Create the index. Returns ``False`` if it already existed."""
        ...

    async def delete_index(self, index: str) -> None:
        ...

    async def put_mapping(self, index: str, doc_type: str, properties: dict[str, Any]) -> None:
        """Apply field mappings for one entity type."""
        ...

    async def index_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str | None,
        body: dict[str, Any],
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        """Upsert a document. Returns at least ``{"id": doc_id, "result": ...}``."""
        ...

    async def get_document(self, index: str, doc_type: str, doc_id: str) -> dict[str, Any] | None:
        """Return the stored document body, or ``None`` if absent."""
        ...

    async def delete_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        ...

    async def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        doc_type: str | None = None,
    ) -> dict[str, Any]:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class CanonicalStore(Protocol):
    """
    Canonical record store capability. ASYNC.

    The store is the source of truth. Records are plain dicts carrying an
    ``id`` key assigned by the store on first save.
    """

    async def save(
        self,
        entity_type: str,
        data: dict[str, Any],
        entity_id: str | None = None,
    ) -> dict[str, Any]:
        """Create or replace a record and return it with its assigned ``id``."""
        ...

    async def load(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        ...

    async def remove(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        """Delete a record and return it, or ``None`` if it did not exist."""
        ...

    async def list_by_ids(self, entity_type: str, ids: Sequence[str]) -> list[dict[str, Any]]:
        """Return the records among ``ids`` that exist, in any order."""
        ...


__all__ = ["SearchEngine", "CanonicalStore"]
