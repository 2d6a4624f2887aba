"""
Index lifecycle manager.

Owns the search index and its per-type mappings. Every method is
idempotent and safe to call again: creating an index that appeared
between the existence check and the create call is not an error, and
re-applying a mapping simply re-asserts it.

Manifesto:
    The index is derived data. Startup must leave it in a state where
    every configured entity type can be written schema-consistently, or
    refuse to start. There is no degraded mode.

Architecture:
    ::

        initialize()
          ├── ping()            ─ EngineUnreachableError on timeout/False/error
          ├── ensure_index()    ─ exists? else create (create race accepted)
          └── apply_mappings()  ─ fan-out, join-all, MappingApplicationError

Tags:
    index-lifecycle, mappings, startup, idempotent, fan-out
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from searchspine.core.errors import (
    EngineUnreachableError,
    MappingApplicationError,
    MissingRequiredFieldError,
)
from searchspine.core.logging import LogContext, get_logger
from searchspine.core.protocols import SearchEngine
from searchspine.execution.fanout import FanOutExecutor
from searchspine.index.projection import ProjectionConfig

logger = get_logger(__name__)


class IndexLifecycleManager:
    """Ensures the index exists and carries a mapping for every configured type.

    Parameters
    ----------
    engine : SearchEngine
        Search engine capability.
    index : str
        Configured index name; used when a call does not name one.
    ping_timeout : float
        Seconds to wait for the startup ping.
    mapping_concurrency : int
        Maximum mapping calls in flight.
    """

    def __init__(
        self,
        engine: SearchEngine,
        index: str,
        *,
        ping_timeout: float = 1.0,
        mapping_concurrency: int = 10,
    ) -> None:
        self._engine = engine
        self._index = index
        self._ping_timeout = ping_timeout
        self._mapping_concurrency = mapping_concurrency

    @property
    def index(self) -> str:
        return self._index

    def _resolve(self, index: str | None) -> str:
        resolved = index or self._index
        if not resolved:
            raise MissingRequiredFieldError("index")
        return resolved

    # ── Startup ──────────────────────────────────────────────────────

    async def ping(self) -> None:
        """Check the engine answers within ``ping_timeout`` seconds."""
        try:
            alive = await asyncio.wait_for(
                self._engine.ping(timeout=self._ping_timeout),
                timeout=self._ping_timeout,
            )
        except asyncio.TimeoutError as e:
            raise EngineUnreachableError(
                f"Search engine did not answer within {self._ping_timeout}s",
                cause=e,
            ) from e
        except Exception as e:
            raise EngineUnreachableError(f"Search engine ping failed: {e}", cause=e) from e

        if not alive:
            raise EngineUnreachableError("Search engine ping returned no answer")
        logger.debug("engine.ping_ok")

    async def initialize(self, projection: ProjectionConfig) -> dict[str, Any]:
        """Run ping → ensure_index → apply_mappings, each stage gating the next."""
        started = time.perf_counter()
        async with LogContext(operation="init", index=self._index):
            await self.ping()
            created = await self.ensure_index()
            applied = await self.apply_mappings(projection)
            summary = {
                "index": self._index,
                "created": created,
                "mappings": applied,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            }
            logger.info("lifecycle.initialized", **summary)
            return summary

    # ── Index ────────────────────────────────────────────────────────

    async def index_exists(self, index: str | None = None) -> bool:
        return await self._engine.index_exists(self._resolve(index))

    async def create_index(self, index: str | None = None) -> bool:
        return await self._engine.create_index(self._resolve(index))

    async def ensure_index(self, index: str | None = None) -> bool:
        """Create the index if absent. Returns ``True`` when this call created it."""
        index = self._resolve(index)
        if await self._engine.index_exists(index):
            logger.debug("index.exists", index=index)
            return False
        created = await self._engine.create_index(index)
        logger.info("index.ensured", index=index, created=created)
        return created

    async def delete_index(self, index: str | None = None) -> None:
        index = self._resolve(index)
        # Ensure first so deleting a missing index is not an error.
        await self.ensure_index(index)
        await self._engine.delete_index(index)
        logger.info("index.deleted", index=index)

    # ── Mappings ─────────────────────────────────────────────────────

    async def _put_mapping(self, entity_type: str, properties: dict[str, Any]) -> None:
        await self._engine.put_mapping(self._index, entity_type, properties)

    async def apply_mappings(self, projection: ProjectionConfig) -> list[str]:
        """Apply one mapping per configured type concurrently.

        Every mapping is attempted. Raises :class:`MappingApplicationError`
        naming all failed types if any failed.
        """
        fanout = FanOutExecutor(limit=self._mapping_concurrency)
        for entity_type in projection.entity_types:
            fanout.add(
                entity_type,
                self._put_mapping,
                entity_type=entity_type,
                properties=projection.mapping_for(entity_type),
            )

        result = await fanout.run_all()
        if result.failed:
            logger.error(
                "mappings.failed",
                index=self._index,
                failed=sorted(result.failures),
                succeeded=result.succeeded,
            )
            raise MappingApplicationError(result.failures).with_context(index=self._index)

        applied = [item.name for item in result.items]
        logger.info("mappings.applied", index=self._index, entity_types=applied)
        return applied
