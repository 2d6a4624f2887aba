"""
Elasticsearch search engine adapter.

Wraps :class:`elasticsearch.AsyncElasticsearch` behind the
:class:`~searchspine.core.protocols.SearchEngine` protocol.

Elasticsearch indices are typeless, so entity types are carried in the
document's type tag: writes set it, and searches scoped to a type filter
on it with a ``term`` query. The engine ``_id`` is ``<type>:<id>`` so ids
from different types never share a document. Per-type mappings merge into the
index mapping; conflicting field types across entity types surface as a
mapping failure for the later type.

Every client exception is re-raised as
:class:`~searchspine.core.errors.EngineError` with the client exception chained.

Tags:
    elasticsearch, adapter, async, search-engine
"""

from __future__ import annotations

import uuid
from typing import Any

from elastic_transport import TransportError
from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError

from searchspine.core.entity import ID_FIELD, TYPE_FIELD, document_key
from searchspine.core.errors import EngineError
from searchspine.core.logging import get_logger
from searchspine.core.settings import SearchSpineSettings
from searchspine.index.projection import REQUIRED_PROPERTIES

logger = get_logger(__name__)

_ALREADY_EXISTS = "resource_already_exists_exception"


def _normalize_host(host: str) -> str:
    return host if "://" in host else f"http://{host}"


def _engine_error(action: str, e: Exception, **context: Any) -> EngineError:
    status = getattr(getattr(e, "meta", None), "status", None)
    # 4xx answers will not change on retry.
    retryable = not isinstance(e, ApiError) or (status is not None and status >= 500)
    return EngineError(f"{action} failed: {e}", retryable=retryable, cause=e).with_context(
        http_status=status, **context
    )


def _base_mappings() -> dict[str, Any]:
    # Id and type tag must be keyword before any document lands.
    return {"properties": {name: dict(schema) for name, schema in REQUIRED_PROPERTIES.items()}}


def scope_to_type(body: dict[str, Any], doc_type: str | None) -> dict[str, Any]:
    """Restrict a search body to one entity type."""
    if not doc_type:
        return body
    scoped = dict(body)
    query = scoped.get("query") or {"match_all": {}}
    scoped["query"] = {
        "bool": {
            "must": [query],
            "filter": [{"term": {TYPE_FIELD: doc_type}}],
        }
    }
    return scoped


class ElasticsearchEngine:
    """SearchEngine backed by an ``AsyncElasticsearch`` client.

    The client is created by :meth:`from_settings` (or injected for
    tests) and owned by this adapter; :meth:`close` releases it.
    """

    def __init__(self, client: AsyncElasticsearch) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: SearchSpineSettings) -> ElasticsearchEngine:
        client = AsyncElasticsearch(
            hosts=[_normalize_host(settings.host)],
            sniff_on_start=settings.sniff_on_start,
            sniff_on_node_failure=settings.sniff_on_node_failure,
            min_delay_between_sniffing=settings.sniff_interval,
        )
        return cls(client)

    @property
    def client(self) -> AsyncElasticsearch:
        return self._client

    async def ping(self, *, timeout: float | None = None) -> bool:
        client = self._client.options(request_timeout=timeout) if timeout else self._client
        try:
            return bool(await client.ping())
        except (ApiError, TransportError) as e:
            raise _engine_error("ping", e) from e

    async def index_exists(self, index: str) -> bool:
        try:
            return bool(await self._client.indices.exists(index=index))
        except (ApiError, TransportError) as e:
            raise _engine_error("index exists", e, index=index) from e

    async def create_index(self, index: str) -> bool:
        try:
            await self._client.indices.create(index=index, mappings=_base_mappings())
        except ApiError as e:
            if _ALREADY_EXISTS in str(e):
                logger.debug("index.create_raced", index=index)
                return False
            raise _engine_error("create index", e, index=index) from e
        except TransportError as e:
            raise _engine_error("create index", e, index=index) from e
        return True

    async def delete_index(self, index: str) -> None:
        try:
            await self._client.indices.delete(index=index)
        except (ApiError, TransportError) as e:
            raise _engine_error("delete index", e, index=index) from e

    async def put_mapping(self, index: str, doc_type: str, properties: dict[str, Any]) -> None:
        try:
            await self._client.indices.put_mapping(index=index, properties=properties)
        except (ApiError, TransportError) as e:
            raise _engine_error("put mapping", e, index=index, entity_type=doc_type) from e

    async def index_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str | None,
        body: dict[str, Any],
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        doc_id = doc_id or uuid.uuid4().hex
        document = {**body, ID_FIELD: doc_id, TYPE_FIELD: doc_type}
        try:
            response = await self._client.index(
                index=index,
                id=document_key(doc_type, doc_id),
                document=document,
                refresh=True if refresh else None,
            )
        except (ApiError, TransportError) as e:
            raise _engine_error(
                "index document", e, index=index, entity_type=doc_type, entity_id=doc_id
            ) from e
        return {"id": doc_id, "result": response.body["result"]}

    async def get_document(self, index: str, doc_type: str, doc_id: str) -> dict[str, Any] | None:
        try:
            response = await self._client.get(index=index, id=document_key(doc_type, doc_id))
        except NotFoundError:
            return None
        except (ApiError, TransportError) as e:
            raise _engine_error(
                "get document", e, index=index, entity_type=doc_type, entity_id=doc_id
            ) from e
        return dict(response.body.get("_source") or {})

    async def delete_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        try:
            response = await self._client.delete(
                index=index,
                id=document_key(doc_type, doc_id),
                refresh=True if refresh else None,
            )
        except (ApiError, TransportError) as e:
            raise _engine_error(
                "delete document", e, index=index, entity_type=doc_type, entity_id=doc_id
            ) from e
        return {"id": doc_id, "result": response.body["result"]}

    async def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        doc_type: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.search(index=index, body=scope_to_type(body, doc_type))
        except (ApiError, TransportError) as e:
            raise _engine_error("search", e, index=index, entity_type=doc_type) from e
        return dict(response.body)

    async def close(self) -> None:
        await self._client.close()
