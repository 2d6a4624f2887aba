"""Tests for searchspine.framework.router."""

import pytest

from searchspine.core.errors import (
    OperationNotFoundError,
    ServiceNotReadyError,
    ValidationError,
)
from searchspine.framework.router import CommandRouter, RouteKey, entity_type_of


def _handler(tag):
    async def handler(args):
        return tag

    return handler


@pytest.fixture
def router():
    router = CommandRouter()
    router.register("init", _handler("init"))
    router.register("entity.save", _handler("generic"))
    router.register("entity.save", _handler("user"), entity_type="sys_user")
    return router


class TestRouteKey:
    def test_parse(self):
        key = RouteKey.parse("entity.save", "sys_user")
        assert key == RouteKey("entity", "save", "sys_user")
        assert key.operation == "entity.save"

    def test_namespace_only(self):
        assert RouteKey.parse("init").operation == "init"

    def test_empty_operation(self):
        with pytest.raises(OperationNotFoundError):
            RouteKey.parse("")


class TestEntityTypeOf:
    def test_from_entity_descriptor(self):
        assert entity_type_of({"entity": {"base": "sys", "name": "user"}}) == "sys_user"

    def test_from_type(self):
        assert entity_type_of({"type": "note"}) == "note"

    def test_none(self):
        assert entity_type_of({}) is None

    def test_bad_entity(self):
        with pytest.raises(ValidationError):
            entity_type_of({"entity": 5})


class TestCommandRouter:
    @pytest.mark.asyncio
    async def test_only_init_before_ready(self, router):
        with pytest.raises(ServiceNotReadyError):
            await router.dispatch("entity.save", {"type": "note"})
        assert await router.dispatch("init") == "init"

    @pytest.mark.asyncio
    async def test_specific_route_wins(self, router):
        router.mark_ready()
        assert await router.dispatch("entity.save", {"entity": "-/sys/user"}) == "user"

    @pytest.mark.asyncio
    async def test_generic_fallback(self, router):
        router.mark_ready()
        assert await router.dispatch("entity.save", {"type": "note"}) == "generic"
        assert await router.dispatch("entity.save", {}) == "generic"

    @pytest.mark.asyncio
    async def test_unknown_operation(self, router):
        router.mark_ready()
        with pytest.raises(OperationNotFoundError):
            await router.dispatch("entity.explode", {})

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self, router):
        async def crash(args):
            raise RuntimeError("boom")

        router.register("crash", crash)
        router.mark_ready()
        with pytest.raises(RuntimeError, match="boom"):
            await router.dispatch("crash")

    def test_duplicate_registration(self, router):
        with pytest.raises(ValueError):
            router.register("entity.save", _handler("again"))

    def test_operations(self, router):
        assert router.operations() == ["entity.save", "entity.save[sys_user]", "init"]
