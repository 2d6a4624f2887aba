"""Tests for searchspine.index.reconcile."""

import pytest
import pytest_asyncio

from searchspine.adapters.memory import InMemoryCanonicalStore
from searchspine.core.errors import CanonicalLookupError
from searchspine.index.reconcile import Reconciler
from searchspine.index.search import SearchHit, SearchResult


def _hits(*pairs, total=None):
    hits = tuple(SearchHit(id=i, source={"entity_type": t, "stale": True}) for i, t in pairs)
    return SearchResult(hits=hits, total=len(hits) if total is None else total)


class FailingStore(InMemoryCanonicalStore):
    async def list_by_ids(self, entity_type, ids):
        raise ConnectionError("store down")


@pytest_asyncio.fixture
async def store():
    store = InMemoryCanonicalStore()
    await store.save("note", {"title": "one"}, "1")
    await store.save("note", {"title": "three"}, "3")
    await store.save("task", {"title": "task"}, "9")
    store.calls.clear()
    return store


class TestReconciler:
    @pytest.mark.asyncio
    async def test_prunes_missing_records(self, store):
        result = await Reconciler(store).reconcile(
            _hits(("1", "note"), ("2", "note"), ("3", "note"), total=40)
        )
        assert result.ids == ["1", "3"]
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_payloads_are_canonical(self, store):
        result = await Reconciler(store).reconcile(_hits(("1", "note")))
        assert result.hits[0].source == {"title": "one", "id": "1"}

    @pytest.mark.asyncio
    async def test_empty_result_skips_store(self, store):
        assert await Reconciler(store).reconcile(SearchResult(total=0)) == SearchResult(total=0)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_empty_page_hides_engine_total(self, store):
        # size=0 or a page past the last hit: no hits but a non-zero engine count.
        result = await Reconciler(store).reconcile(SearchResult(total=3))
        assert result == SearchResult(hits=(), total=0)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_one_lookup_per_type(self, store):
        result = await Reconciler(store).reconcile(
            _hits(("9", "task"), ("1", "note"), ("3", "note"))
        )
        assert result.ids == ["9", "1", "3"]
        assert sorted(store.calls) == [("list_by_ids", "note"), ("list_by_ids", "task")]

    @pytest.mark.asyncio
    async def test_homogeneous_result_single_lookup(self, store):
        await Reconciler(store).reconcile(_hits(("1", "note"), ("3", "note")))
        assert store.calls == [("list_by_ids", "note")]

    @pytest.mark.asyncio
    async def test_untyped_hits_are_pruned(self, store):
        result = await Reconciler(store).reconcile(
            SearchResult(hits=(SearchHit(id="1", source={}), SearchHit(id="3", source={"entity_type": "note"})), total=2)
        )
        assert result.ids == ["3"]
        assert result.total == 1

    @pytest.mark.asyncio
    async def test_all_pruned(self, store):
        result = await Reconciler(store).reconcile(_hits(("404", "note")))
        assert result == SearchResult(hits=(), total=0)

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates(self):
        with pytest.raises(CanonicalLookupError) as exc:
            await Reconciler(FailingStore()).reconcile(_hits(("1", "note")))
        assert isinstance(exc.value.cause, ConnectionError)
        assert exc.value.context.entity_type == "note"
