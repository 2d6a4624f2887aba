"""Command router: operation names to async handlers.

Operations are invoked by name (``record.search``, ``entity.save``) with a
mapping of arguments. A route is keyed by ``(namespace, command,
entity_type)``; a route registered for a specific entity type wins over
the generic route for the same operation.

Manifesto:
    An explicit table keeps dispatch inspectable: ``operations()`` lists
    exactly what the service answers, and per-type overrides are rows in
    that table rather than pattern matching at call time.

Tags:
    router, dispatch, command-bus, registry
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from searchspine.core.entity import EntityDescriptor
from searchspine.core.errors import (
    OperationNotFoundError,
    SearchSpineError,
    ServiceNotReadyError,
    ValidationError,
)
from searchspine.core.logging import LogContext, get_logger

logger = get_logger(__name__)

Handler = Callable[[Mapping[str, Any]], Awaitable[Any]]

INIT_OPERATION = "init"


@dataclass(frozen=True)
class RouteKey:
    """Routing key for one handler."""

    namespace: str
    command: str = ""
    entity_type: str | None = None

    @classmethod
    def parse(cls, operation: str, entity_type: str | None = None) -> RouteKey:
        namespace, _, command = operation.partition(".")
        if not namespace:
            raise OperationNotFoundError(operation)
        return cls(namespace=namespace, command=command, entity_type=entity_type)

    @property
    def operation(self) -> str:
        return f"{self.namespace}.{self.command}" if self.command else self.namespace


def entity_type_of(args: Mapping[str, Any]) -> str | None:
    """Entity type addressed by an argument record, if any."""
    if args.get("entity") is not None:
        try:
            return EntityDescriptor.coerce(args["entity"]).key
        except TypeError as e:
            raise ValidationError(str(e), cause=e) from e
    if args.get("type"):
        return str(args["type"])
    return None


class CommandRouter:
    """Routing table with an initialization gate.

    Until :meth:`mark_ready` is called only ``init`` is accepted.
    """

    def __init__(self) -> None:
        self._routes: dict[RouteKey, Handler] = {}
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def mark_ready(self) -> None:
        self._ready = True

    def register(
        self,
        operation: str,
        handler: Handler,
        *,
        entity_type: str | None = None,
    ) -> None:
        key = RouteKey.parse(operation, entity_type)
        if key in self._routes:
            raise ValueError(f"Route already registered: {key}")
        self._routes[key] = handler
        logger.debug("route.registered", operation=key.operation, entity_type=entity_type)

    def resolve(self, operation: str, args: Mapping[str, Any]) -> Handler:
        """Find the handler: type-specific route first, then the generic one."""
        entity_type = entity_type_of(args)
        if entity_type is not None:
            handler = self._routes.get(RouteKey.parse(operation, entity_type))
            if handler is not None:
                return handler
        handler = self._routes.get(RouteKey.parse(operation))
        if handler is None:
            raise OperationNotFoundError(operation)
        return handler

    async def dispatch(self, operation: str, args: Mapping[str, Any] | None = None) -> Any:
        args = args or {}
        if not self._ready and operation != INIT_OPERATION:
            raise ServiceNotReadyError(
                f"Operation {operation} rejected: service is not initialized"
            )

        handler = self.resolve(operation, args)
        started = time.perf_counter()
        async with LogContext(operation=operation, entity_type=entity_type_of(args)):
            try:
                result = await handler(args)
            except SearchSpineError as e:
                logger.warning("operation.failed", **e.to_dict())
                raise
            except Exception as e:
                logger.error(
                    "operation.crashed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    exc_info=True,
                )
                raise
            logger.debug(
                "operation.completed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return result

    def operations(self) -> list[str]:
        """Registered operation names, type-specific routes shown as ``op[type]``."""
        names = []
        for key in self._routes:
            suffix = f"[{key.entity_type}]" if key.entity_type else ""
            names.append(key.operation + suffix)
        return sorted(names)
