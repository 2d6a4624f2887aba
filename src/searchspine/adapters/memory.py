"""
In-memory search engine and canonical store.

Manifesto:
    Tests and single-process development need both capabilities without
    running Elasticsearch or a database. These doubles follow the same
    protocols and the same addressing rules as the real adapters: documents
    are stored under ``<type>:<id>``, and the type tag and id field are
    always written into the source.

The engine understands a small query subset: ``match_all``,
``simple_query_string`` / ``query_string`` (every term must appear in
some string field, case-insensitive), ``term``, ``ids`` and ``bool``
(``must`` / ``filter`` / ``should`` / ``must_not``). Anything else raises
:class:`~searchspine.core.errors.EngineError`.

Tags:
    in-memory, testing, search-engine, canonical-store
"""

from __future__ import annotations

import asyncio
import copy
import re
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from searchspine.core.entity import ID_FIELD, TYPE_FIELD, document_key
from searchspine.core.errors import EngineError
from searchspine.index.projection import REQUIRED_PROPERTIES

__all__ = ["InMemorySearchEngine", "InMemoryCanonicalStore"]

_TOKEN = re.compile(r"\w+")


def _tokens(value: Any) -> set[str]:
    if isinstance(value, str):
        return {t.lower() for t in _TOKEN.findall(value)}
    if isinstance(value, Mapping):
        return set().union(*(_tokens(v) for v in value.values())) if value else set()
    if isinstance(value, list | tuple):
        return set().union(*(_tokens(v) for v in value)) if value else set()
    if value is None or isinstance(value, bool):
        return set()
    return {str(value).lower()}


def _matches(query: Mapping[str, Any], key: str, source: Mapping[str, Any]) -> bool:
    if len(query) != 1:
        raise EngineError(f"Unsupported query shape: {sorted(query)}", retryable=False)
    (kind, spec), = query.items()

    if kind == "match_all":
        return True
    if kind in ("simple_query_string", "query_string"):
        wanted = _tokens(spec.get("query", ""))
        operator = str(spec.get("default_operator", "or")).lower()
        present = _tokens(dict(source))
        if not wanted:
            return True
        return wanted <= present if operator == "and" else bool(wanted & present)
    if kind == "term":
        (field, value), = spec.items()
        if isinstance(value, Mapping):
            value = value.get("value")
        return source.get(field) == value
    if kind == "ids":
        # Engine ids, as Elasticsearch: ``<type>:<id>``.
        return key in {str(v) for v in spec.get("values", [])}
    if kind == "bool":
        def clauses(name: str) -> list[Mapping[str, Any]]:
            found = spec.get(name, [])
            return [found] if isinstance(found, Mapping) else list(found)

        if not all(_matches(q, key, source) for q in clauses("must") + clauses("filter")):
            return False
        if any(_matches(q, key, source) for q in clauses("must_not")):
            return False
        should = clauses("should")
        return not should or any(_matches(q, key, source) for q in should)

    raise EngineError(f"Unsupported query type: {kind}", retryable=False)


class InMemorySearchEngine:
    """Process-local search engine double.

    Example::

        engine = InMemorySearchEngine()
        await engine.create_index("records")
        await engine.index_document("records", "sys_user", "1", {"name": "ada"})
        await engine.search("records", {"query": {"match_all": {}}})
    """

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.indices: dict[str, dict[str, dict[str, Any]]] = {}
        self.mappings: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    def _index(self, index: str) -> dict[str, dict[str, Any]]:
        try:
            return self.indices[index]
        except KeyError:
            raise EngineError(f"no such index [{index}]", retryable=False).with_context(
                index=index
            ) from None

    async def ping(self, *, timeout: float | None = None) -> bool:
        return self.available and not self._closed

    async def index_exists(self, index: str) -> bool:
        return index in self.indices

    async def create_index(self, index: str) -> bool:
        async with self._lock:
            if index in self.indices:
                return False
            self.indices[index] = {}
            self.mappings[index] = copy.deepcopy(dict(REQUIRED_PROPERTIES))
            return True

    async def delete_index(self, index: str) -> None:
        async with self._lock:
            self._index(index)
            del self.indices[index]
            self.mappings.pop(index, None)

    async def put_mapping(self, index: str, doc_type: str, properties: dict[str, Any]) -> None:
        self._index(index)
        merged = self.mappings.setdefault(index, {})
        for name, schema in properties.items():
            if name in merged and merged[name] != schema:
                raise EngineError(
                    f"mapper [{name}] cannot be changed from {merged[name]} to {schema}",
                    retryable=False,
                ).with_context(index=index, entity_type=doc_type)
        merged.update(copy.deepcopy(properties))

    async def index_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str | None,
        body: dict[str, Any],
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        documents = self._index(index)
        doc_id = doc_id or uuid.uuid4().hex
        key = document_key(doc_type, doc_id)
        source = {**copy.deepcopy(dict(body)), ID_FIELD: doc_id, TYPE_FIELD: doc_type}
        result = "updated" if key in documents else "created"
        documents[key] = source
        return {"id": doc_id, "result": result}

    async def get_document(self, index: str, doc_type: str, doc_id: str) -> dict[str, Any] | None:
        source = self._index(index).get(document_key(doc_type, doc_id))
        return copy.deepcopy(source) if source is not None else None

    async def delete_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        *,
        refresh: bool = False,
    ) -> dict[str, Any]:
        documents = self._index(index)
        key = document_key(doc_type, doc_id)
        if key not in documents:
            raise EngineError(f"document [{doc_id}] not found", retryable=False).with_context(
                index=index, entity_type=doc_type, entity_id=doc_id
            )
        del documents[key]
        return {"id": doc_id, "result": "deleted"}

    async def search(
        self,
        index: str,
        body: dict[str, Any],
        *,
        doc_type: str | None = None,
    ) -> dict[str, Any]:
        documents = self._index(index)
        query = body.get("query") or {"match_all": {}}
        matched = [
            {"_index": index, "_id": key, "_score": 1.0, "_source": copy.deepcopy(source)}
            for key, source in documents.items()
            if (doc_type is None or source.get(TYPE_FIELD) == doc_type)
            and _matches(query, key, source)
        ]
        start = int(body.get("from", 0))
        size = int(body.get("size", 10))
        return {
            "hits": {
                "total": {"value": len(matched), "relation": "eq"},
                "hits": matched[start:start + size],
            }
        }

    async def close(self) -> None:
        self._closed = True


class InMemoryCanonicalStore:
    """Process-local canonical store keyed by ``(entity_type, id)``."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []

    async def save(
        self,
        entity_type: str,
        data: dict[str, Any],
        entity_id: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(("save", entity_type))
        entity_id = str(entity_id or data.get(ID_FIELD) or uuid.uuid4().hex)
        record = {**copy.deepcopy(data), ID_FIELD: entity_id}
        self.records.setdefault(entity_type, {})[entity_id] = record
        return copy.deepcopy(record)

    async def load(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        self.calls.append(("load", entity_type))
        record = self.records.get(entity_type, {}).get(str(entity_id))
        return copy.deepcopy(record) if record is not None else None

    async def remove(self, entity_type: str, entity_id: str) -> dict[str, Any] | None:
        self.calls.append(("remove", entity_type))
        return self.records.get(entity_type, {}).pop(str(entity_id), None)

    async def list_by_ids(self, entity_type: str, ids: Sequence[str]) -> list[dict[str, Any]]:
        self.calls.append(("list_by_ids", entity_type))
        records = self.records.get(entity_type, {})
        return [copy.deepcopy(records[str(i)]) for i in ids if str(i) in records]
