"""Document writer and remover.

The writer turns a canonical entity into its index document and upserts
it. It assumes the canonical write already succeeded; ordering is the
caller's job. The remover is best-effort: a stale index entry is harmless
because the reconciler drops hits whose canonical record is gone.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from searchspine.core.errors import EngineError, MissingRequiredFieldError
from searchspine.core.logging import get_logger
from searchspine.core.protocols import SearchEngine
from searchspine.index.projection import ProjectionConfig
from searchspine.index.requests import DocumentRequest

logger = get_logger(__name__)


class DocumentWriter:
    """Projects entities and writes them to the index."""

    def __init__(
        self,
        engine: SearchEngine,
        projection: ProjectionConfig,
        index: str,
        *,
        refresh: bool = False,
    ) -> None:
        self._engine = engine
        self._projection = projection
        self._index = index
        self._refresh = refresh

    async def write(
        self,
        entity_type: str,
        entity_id: Any,
        canonical_fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Upsert the projected document for one entity.

        ``entity_id`` must be the identifier assigned by the canonical
        store; the reconciler matches hits to records by it.
        """
        if entity_id in (None, ""):
            raise MissingRequiredFieldError("id").with_context(entity_type=entity_type)
        doc_id = str(entity_id)
        document = self._projection.project(entity_type, doc_id, canonical_fields)
        try:
            response = await self._engine.index_document(
                self._index,
                entity_type,
                doc_id,
                document,
                refresh=self._refresh,
            )
        except EngineError as e:
            e.with_context(index=self._index, entity_type=entity_type, entity_id=doc_id)
            raise
        logger.debug("document.written", entity_type=entity_type, entity_id=doc_id)
        return response

    async def write_raw(self, request: DocumentRequest) -> dict[str, Any]:
        """Write an unprojected record (non-entity documents)."""
        return await self._engine.index_document(
            request.index,
            request.doc_type,
            request.doc_id,
            dict(request.body),
            refresh=request.refresh,
        )


class DocumentRemover:
    """Deletes index documents; failures are logged, never raised."""

    def __init__(self, engine: SearchEngine, index: str, *, refresh: bool = False) -> None:
        self._engine = engine
        self._index = index
        self._refresh = refresh

    async def remove(self, entity_type: str, entity_id: Any) -> bool:
        """Delete one document. Returns ``False`` if the delete failed."""
        return await self.remove_request(
            DocumentRequest(
                index=self._index,
                doc_type=entity_type,
                doc_id=str(entity_id),
                refresh=self._refresh,
            )
        )

    async def remove_request(self, request: DocumentRequest) -> bool:
        try:
            await self._engine.delete_document(
                request.index,
                request.doc_type,
                str(request.doc_id),
                refresh=request.refresh,
            )
        except Exception as e:
            logger.warning(
                "document.remove_failed",
                index=request.index,
                entity_type=request.doc_type,
                entity_id=request.doc_id,
                error=str(e),
            )
            return False
        logger.debug("document.removed", entity_type=request.doc_type, entity_id=request.doc_id)
        return True
