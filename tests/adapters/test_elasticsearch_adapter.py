"""Tests for searchspine.adapters.elasticsearch.

The client is a mock; no cluster is needed.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from elastic_transport import ApiResponseMeta, ConnectionError as TransportConnectionError
from elasticsearch import BadRequestError, NotFoundError

from searchspine.adapters.elasticsearch import ElasticsearchEngine, _normalize_host, scope_to_type
from searchspine.core.errors import EngineError
from searchspine.core.settings import SearchSpineSettings

INDEX = "records"


def _meta(status):
    return ApiResponseMeta(
        status=status, http_version="1.1", headers={}, duration=0.0, node=MagicMock()
    )


def _response(body):
    return SimpleNamespace(body=body)


@pytest.fixture
def client():
    client = MagicMock()
    client.options.return_value = client
    client.ping = AsyncMock(return_value=True)
    client.indices.exists = AsyncMock(return_value=True)
    client.indices.create = AsyncMock()
    client.indices.delete = AsyncMock()
    client.indices.put_mapping = AsyncMock()
    client.index = AsyncMock(return_value=_response({"_id": "1", "result": "created"}))
    client.get = AsyncMock()
    client.delete = AsyncMock(return_value=_response({"_id": "1", "result": "deleted"}))
    client.search = AsyncMock(return_value=_response({"hits": {"total": {"value": 0}, "hits": []}}))
    client.close = AsyncMock()
    return client


@pytest.fixture
def engine(client):
    return ElasticsearchEngine(client)


class TestHelpers:
    def test_normalize_host(self):
        assert _normalize_host("127.0.0.1:9200") == "http://127.0.0.1:9200"
        assert _normalize_host("https://es:9200") == "https://es:9200"

    def test_scope_to_type(self):
        body = {"query": {"match_all": {}}, "size": 5}
        assert scope_to_type(body, "note") == {
            "query": {
                "bool": {
                    "must": [{"match_all": {}}],
                    "filter": [{"term": {"entity_type": "note"}}],
                }
            },
            "size": 5,
        }
        assert body == {"query": {"match_all": {}}, "size": 5}

    def test_unscoped_body_unchanged(self):
        body = {"query": {"match_all": {}}}
        assert scope_to_type(body, None) is body


class TestFromSettings:
    def test_client_options(self):
        settings = SearchSpineSettings(host="es:9200", sniff_on_start=True, sniff_interval=60)
        with patch("searchspine.adapters.elasticsearch.AsyncElasticsearch") as cls:
            ElasticsearchEngine.from_settings(settings)
        cls.assert_called_once_with(
            hosts=["http://es:9200"],
            sniff_on_start=True,
            sniff_on_node_failure=False,
            min_delay_between_sniffing=60.0,
        )

    def test_node_failure_sniffing_is_separate(self):
        settings = SearchSpineSettings(sniff_on_node_failure=True)
        with patch("searchspine.adapters.elasticsearch.AsyncElasticsearch") as cls:
            ElasticsearchEngine.from_settings(settings)
        kwargs = cls.call_args.kwargs
        assert kwargs["sniff_on_start"] is False
        assert kwargs["sniff_on_node_failure"] is True


class TestElasticsearchEngine:
    @pytest.mark.asyncio
    async def test_ping_uses_timeout(self, engine, client):
        assert await engine.ping(timeout=0.5) is True
        client.options.assert_called_once_with(request_timeout=0.5)

    @pytest.mark.asyncio
    async def test_create_index(self, engine, client):
        assert await engine.create_index(INDEX) is True
        client.indices.create.assert_awaited_once_with(
            index=INDEX,
            mappings={
                "properties": {
                    "id": {"type": "keyword"},
                    "entity_type": {"type": "keyword"},
                }
            },
        )

    @pytest.mark.asyncio
    async def test_create_index_race(self, engine, client):
        client.indices.create.side_effect = BadRequestError(
            "resource_already_exists_exception", _meta(400), {}
        )
        assert await engine.create_index(INDEX) is False

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retryable(self, engine, client):
        client.indices.put_mapping.side_effect = BadRequestError(
            "illegal_argument_exception", _meta(400), {}
        )
        with pytest.raises(EngineError) as exc:
            await engine.put_mapping(INDEX, "note", {"a": {"type": "keyword"}})
        assert exc.value.retryable is False
        assert exc.value.context.entity_type == "note"
        assert exc.value.context.metadata["http_status"] == 400

    @pytest.mark.asyncio
    async def test_transport_errors_are_retryable(self, engine, client):
        client.search.side_effect = TransportConnectionError("refused")
        with pytest.raises(EngineError) as exc:
            await engine.search(INDEX, {"query": {"match_all": {}}})
        assert exc.value.retryable is True

    @pytest.mark.asyncio
    async def test_put_mapping(self, engine, client):
        await engine.put_mapping(INDEX, "note", {"id": {"type": "keyword"}})
        client.indices.put_mapping.assert_awaited_once_with(
            index=INDEX, properties={"id": {"type": "keyword"}}
        )

    @pytest.mark.asyncio
    async def test_index_document_addresses_by_type_and_id(self, engine, client):
        client.index.return_value = _response({"_id": "note:1", "result": "created"})
        response = await engine.index_document(INDEX, "note", "1", {"a": 1}, refresh=True)
        assert response == {"id": "1", "result": "created"}
        client.index.assert_awaited_once_with(
            index=INDEX,
            id="note:1",
            document={"a": 1, "id": "1", "entity_type": "note"},
            refresh=True,
        )

    @pytest.mark.asyncio
    async def test_generated_id_is_prefixed(self, engine, client):
        response = await engine.index_document(INDEX, "note", None, {})
        assert len(response["id"]) == 32
        assert client.index.await_args.kwargs["id"] == f"note:{response['id']}"

    @pytest.mark.asyncio
    async def test_same_id_under_two_types_are_distinct(self, engine, client):
        await engine.index_document(INDEX, "sys_user", "1", {})
        await engine.index_document(INDEX, "eu_ops_ticket", "1", {})
        ids = [call.kwargs["id"] for call in client.index.await_args_list]
        assert ids == ["sys_user:1", "eu_ops_ticket:1"]

    @pytest.mark.asyncio
    async def test_get_document(self, engine, client):
        client.get.return_value = _response({"_source": {"a": 1, "entity_type": "note"}})
        assert await engine.get_document(INDEX, "note", "1") == {"a": 1, "entity_type": "note"}
        client.get.assert_awaited_once_with(index=INDEX, id="note:1")

    @pytest.mark.asyncio
    async def test_get_missing_document(self, engine, client):
        client.get.side_effect = NotFoundError("not_found", _meta(404), {})
        assert await engine.get_document(INDEX, "note", "1") is None

    @pytest.mark.asyncio
    async def test_delete_document(self, engine, client):
        assert await engine.delete_document(INDEX, "note", "1") == {"id": "1", "result": "deleted"}
        client.delete.assert_awaited_once_with(index=INDEX, id="note:1", refresh=None)

    @pytest.mark.asyncio
    async def test_search_scopes_type(self, engine, client):
        response = await engine.search(INDEX, {"query": {"match_all": {}}}, doc_type="note")
        assert response["hits"]["hits"] == []
        body = client.search.await_args.kwargs["body"]
        assert body["query"]["bool"]["filter"] == [{"term": {"entity_type": "note"}}]

    @pytest.mark.asyncio
    async def test_close(self, engine, client):
        await engine.close()
        client.close.assert_awaited_once()
