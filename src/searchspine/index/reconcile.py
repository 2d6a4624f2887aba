"""
Reconciler: the read-time step that makes search results canonical.

Manifesto:
    The index only says *which* records matched. What they contain, and
    whether they still exist, comes from the canonical store. A hit whose
    record is gone is dropped; a hit whose record changed carries the new
    version. Callers never receive a payload read from the index.

Architecture:
    ::

        SearchResult (engine)
          │  empty? ───────────────────────────► total 0, no lookup
          ▼
        group hit ids by type tag (engine order kept)
          │
          ▼
        one list_by_ids per type  ──error──► CanonicalLookupError
          │
          ▼
        keep hits with a canonical record, payload := record
        total := kept hits

Tags:
    reconciliation, rehydration, pruning, canonical-store
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from searchspine.core.entity import ID_FIELD
from searchspine.core.errors import CanonicalLookupError
from searchspine.core.logging import get_logger
from searchspine.core.protocols import CanonicalStore
from searchspine.index.search import SearchHit, SearchResult

logger = get_logger(__name__)


class Reconciler:
    """Replaces index payloads with canonical records and prunes missing ones."""

    def __init__(self, store: CanonicalStore) -> None:
        self._store = store

    async def reconcile(self, result: SearchResult) -> SearchResult:
        if not result.hits:
            return SearchResult(total=0)

        ids_by_type: dict[str, list[str]] = {}
        untyped = 0
        for hit in result.hits:
            entity_type = hit.entity_type
            if entity_type is None:
                untyped += 1
                continue
            ids_by_type.setdefault(entity_type, []).append(hit.id)

        if untyped:
            logger.warning("reconcile.untyped_hits_pruned", count=untyped)

        lookups = await asyncio.gather(
            *[self._lookup(entity_type, ids) for entity_type, ids in ids_by_type.items()]
        )
        records = dict(zip(ids_by_type, lookups, strict=True))

        kept: list[SearchHit] = []
        for hit in result.hits:
            record = records.get(hit.entity_type, {}).get(hit.id) if hit.entity_type else None
            if record is not None:
                kept.append(replace(hit, source=record))

        pruned = len(result.hits) - len(kept)
        if pruned:
            logger.info(
                "reconcile.pruned",
                pruned=pruned,
                kept=len(kept),
                entity_types=sorted(ids_by_type),
            )
        return SearchResult(hits=tuple(kept), total=len(kept))

    async def _lookup(self, entity_type: str, ids: Sequence[str]) -> dict[str, dict[str, Any]]:
        try:
            records = await self._store.list_by_ids(entity_type, list(ids))
        except Exception as e:
            raise CanonicalLookupError(
                f"Canonical lookup failed for {len(ids)} {entity_type} records",
                cause=e,
            ).with_context(entity_type=entity_type) from e
        return {str(record[ID_FIELD]): record for record in records if record.get(ID_FIELD) is not None}
