"""
Search service: the operations behind the command router.

Write path::

    entity.save → canonical save ─fail─► raise, index untouched
                       │ ok
                       ▼
                  project + index write ─fail─► raise EngineError
                       │ ok                     (canonical write stays)
                       ▼
                  canonical result returned unchanged

Read path::

    record.search → compile → engine search → reconcile → canonical hits

Removal deletes the index document first (best-effort) and then the
canonical record; the canonical result is what the caller gets.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from searchspine.core.entity import ID_FIELD, EntityDescriptor
from searchspine.core.errors import EngineError, MissingRequiredFieldError, ValidationError
from searchspine.core.logging import get_logger
from searchspine.core.protocols import CanonicalStore, SearchEngine
from searchspine.core.settings import SearchSpineSettings
from searchspine.framework.router import CommandRouter
from searchspine.index.lifecycle import IndexLifecycleManager
from searchspine.index.projection import ProjectionConfig
from searchspine.index.query import SearchRequest
from searchspine.index.reconcile import Reconciler
from searchspine.index.requests import build_request, require_id, with_body, with_id
from searchspine.index.search import SearchExecutor, SearchResult
from searchspine.index.writer import DocumentRemover, DocumentWriter

logger = get_logger(__name__)


def _descriptor(args: Mapping[str, Any]) -> EntityDescriptor:
    if args.get("entity") is None:
        raise MissingRequiredFieldError("entity")
    try:
        return EntityDescriptor.coerce(args["entity"])
    except TypeError as e:
        raise ValidationError(str(e), cause=e) from e


def _data(args: Mapping[str, Any]) -> dict[str, Any]:
    data = args.get("data")
    if data is None:
        raise MissingRequiredFieldError("data")
    if not isinstance(data, Mapping):
        raise ValidationError("data must be a mapping")
    return dict(data)


def _required_id(args: Mapping[str, Any], entity_type: str) -> str:
    entity_id = args.get("id")
    if entity_id in (None, ""):
        raise MissingRequiredFieldError("id").with_context(entity_type=entity_type)
    return str(entity_id)


class SearchService:
    """Owns the components and registers their operations on a router.

    All collaborators are injected; nothing is looked up globally.
    """

    def __init__(
        self,
        settings: SearchSpineSettings,
        engine: SearchEngine,
        store: CanonicalStore,
        *,
        projection: ProjectionConfig | None = None,
        router: CommandRouter | None = None,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.store = store
        self.projection = projection or ProjectionConfig.from_declarations(settings.entities)
        self.lifecycle = IndexLifecycleManager(
            engine,
            settings.index,
            ping_timeout=settings.ping_timeout,
            mapping_concurrency=settings.mapping_concurrency,
        )
        self.writer = DocumentWriter(
            engine, self.projection, settings.index, refresh=settings.refresh_on_save
        )
        self.remover = DocumentRemover(engine, settings.index, refresh=settings.refresh_on_save)
        self.executor = SearchExecutor(engine, settings.index)
        self.reconciler = Reconciler(store)
        self.router = router or CommandRouter()
        self.register(self.router)

    # ── Registration ─────────────────────────────────────────────────

    def register(self, router: CommandRouter) -> None:
        router.register("init", self.init)

        router.register("index.create", self.index_create)
        router.register("index.exists", self.index_exists)
        router.register("index.delete", self.index_delete)

        router.register("record.save", self.record_save)
        router.register("record.load", self.record_load)
        router.register("record.search", self.record_search)
        router.register("record.remove", self.record_remove)

        if len(self.projection):
            # Only configured types are indexed; the rest go to the store alone.
            for entity_type in self.projection.entity_types:
                router.register("entity.save", self.entity_save, entity_type=entity_type)
                router.register("entity.remove", self.entity_remove, entity_type=entity_type)
            router.register("entity.save", self.entity_save_canonical)
            router.register("entity.remove", self.entity_remove_canonical)
        else:
            router.register("entity.save", self.entity_save)
            router.register("entity.remove", self.entity_remove)

    async def dispatch(self, operation: str, args: Mapping[str, Any] | None = None) -> Any:
        return await self.router.dispatch(operation, args)

    async def close(self) -> None:
        await self.engine.close()

    # ── Startup ──────────────────────────────────────────────────────

    async def init(self, args: Mapping[str, Any]) -> dict[str, Any]:
        summary = await self.lifecycle.initialize(self.projection)
        self.router.mark_ready()
        return summary

    # ── Index ────────────────────────────────────────────────────────

    async def index_create(self, args: Mapping[str, Any]) -> dict[str, Any]:
        index = args.get("index") or self.settings.index
        created = await self.lifecycle.ensure_index(index)
        return {"index": index, "created": created}

    async def index_exists(self, args: Mapping[str, Any]) -> dict[str, Any]:
        index = args.get("index") or self.settings.index
        return {"index": index, "exists": await self.lifecycle.index_exists(index)}

    async def index_delete(self, args: Mapping[str, Any]) -> dict[str, Any]:
        index = args.get("index") or self.settings.index
        await self.lifecycle.delete_index(index)
        return {"index": index, "deleted": True}

    # ── Records ──────────────────────────────────────────────────────

    async def record_save(self, args: Mapping[str, Any]) -> dict[str, Any]:
        data = _data(args)
        request = build_request(self.settings.index, args, refresh=self.settings.refresh_on_save)
        request = with_body(request, data)
        request = with_id(request, args.get("id") or data.get(ID_FIELD))
        return await self.writer.write_raw(request)

    async def record_load(self, args: Mapping[str, Any]) -> dict[str, Any] | None:
        request = build_request(self.settings.index, args)
        request = require_id(with_id(request, args.get("id")))
        return await self.engine.get_document(request.index, request.doc_type, request.doc_id)

    async def record_search(self, args: Mapping[str, Any]) -> SearchResult:
        request = SearchRequest.from_args(args)
        raw = await self.executor.search(request)
        return await self.reconciler.reconcile(raw)

    async def record_remove(self, args: Mapping[str, Any]) -> dict[str, Any]:
        request = build_request(self.settings.index, args, refresh=self.settings.refresh_on_save)
        request = require_id(with_id(request, args.get("id")))
        removed = await self.remover.remove_request(request)
        return {"id": request.doc_id, "removed": removed}

    # ── Entities ─────────────────────────────────────────────────────

    async def entity_save(self, args: Mapping[str, Any]) -> dict[str, Any]:
        entity_type = _descriptor(args).key
        saved = await self._canonical_save(entity_type, args)

        try:
            await self.writer.write(entity_type, saved.get(ID_FIELD), saved)
        except EngineError:
            logger.error(
                "entity.index_write_failed",
                entity_type=entity_type,
                entity_id=saved.get(ID_FIELD),
                canonical_committed=True,
            )
            raise
        return saved

    async def entity_save_canonical(self, args: Mapping[str, Any]) -> dict[str, Any]:
        return await self._canonical_save(_descriptor(args).key, args)

    async def entity_remove(self, args: Mapping[str, Any]) -> dict[str, Any] | None:
        entity_type = _descriptor(args).key
        entity_id = _required_id(args, entity_type)
        await self.remover.remove(entity_type, entity_id)
        return await self.store.remove(entity_type, entity_id)

    async def entity_remove_canonical(self, args: Mapping[str, Any]) -> dict[str, Any] | None:
        entity_type = _descriptor(args).key
        return await self.store.remove(entity_type, _required_id(args, entity_type))

    async def _canonical_save(self, entity_type: str, args: Mapping[str, Any]) -> dict[str, Any]:
        data = _data(args)
        entity_id = args.get("id") or data.get(ID_FIELD)
        return await self.store.save(
            entity_type, data, None if entity_id in (None, "") else str(entity_id)
        )
