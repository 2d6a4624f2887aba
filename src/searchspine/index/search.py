"""Search executor and result values."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from searchspine.core.entity import ID_FIELD, TYPE_FIELD, entity_id_from_key, type_from_tag
from searchspine.core.errors import EngineError
from searchspine.core.logging import get_logger
from searchspine.core.protocols import SearchEngine
from searchspine.index.query import SearchRequest, compile_query

logger = get_logger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """One engine hit. ``source`` is the index payload until reconciled."""

    id: str
    source: Mapping[str, Any] = field(default_factory=dict, hash=False)
    score: float | None = None

    @property
    def entity_type(self) -> str | None:
        return type_from_tag(self.source.get(TYPE_FIELD))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "score": self.score, "source": dict(self.source)}


@dataclass(frozen=True)
class SearchResult:
    """Ordered hits and their total."""

    hits: tuple[SearchHit, ...] = ()
    total: int = 0

    def __len__(self) -> int:
        return len(self.hits)

    @property
    def ids(self) -> list[str]:
        return [hit.id for hit in self.hits]

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "hits": [hit.to_dict() for hit in self.hits]}


def _parse_hit(raw: Mapping[str, Any]) -> SearchHit:
    source = raw.get("_source") or {}
    entity_id = source.get(ID_FIELD)
    if entity_id in (None, ""):
        entity_id = entity_id_from_key(str(raw["_id"]), source.get(TYPE_FIELD))
    return SearchHit(id=str(entity_id), source=source, score=raw.get("_score"))


def parse_response(response: Mapping[str, Any]) -> SearchResult:
    """Parse an engine response body (``{"hits": {"total": ..., "hits": [...]}}``).

    Hit ids are canonical ids: the source's id field when present, else the
    engine ``_id`` without its type prefix.
    """
    hits_block = response.get("hits") or {}
    raw_hits = hits_block.get("hits") or []
    total = hits_block.get("total", len(raw_hits))
    if isinstance(total, Mapping):
        total = total.get("value", len(raw_hits))

    hits = tuple(_parse_hit(raw) for raw in raw_hits)
    return SearchResult(hits=hits, total=int(total))


class SearchExecutor:
    """Runs compiled searches against the configured index.

    The returned total is the engine's own count, before reconciliation;
    it must not be shown to callers.
    """

    def __init__(self, engine: SearchEngine, index: str) -> None:
        self._engine = engine
        self._index = index

    async def search(self, request: SearchRequest) -> SearchResult:
        body = compile_query(request)
        try:
            response = await self._engine.search(self._index, body, doc_type=request.entity_type)
        except EngineError as e:
            e.with_context(index=self._index, entity_type=request.entity_type)
            raise
        result = parse_response(response)
        logger.debug(
            "search.executed",
            entity_type=request.entity_type,
            hits=len(result),
            engine_total=result.total,
        )
        return result
