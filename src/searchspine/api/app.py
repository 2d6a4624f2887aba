"""
FastAPI application factory.

``create_app()`` builds the service (or takes one), runs ``init`` in the
lifespan and exposes the command router over HTTP.

Endpoints:
    ``POST /commands/{operation}``  dispatch one operation; body is the args object
    ``GET /health``                 readiness and the registered operations

Manifesto:
    The HTTP layer adds no semantics. Every request becomes a router
    dispatch, and every error becomes a problem response chosen by its
    category.

Tags:
    api, app-factory, FastAPI, lifespan
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, Request

from searchspine import __version__
from searchspine.api.errors import search_spine_error_handler, unhandled_exception_handler
from searchspine.bootstrap import build_service, get_settings
from searchspine.core.errors import SearchSpineError
from searchspine.core.logging import get_logger
from searchspine.core.settings import SearchSpineSettings
from searchspine.framework.handlers import SearchService
from searchspine.framework.router import INIT_OPERATION

log = get_logger("searchspine.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize the service before serving; close it on shutdown.

    A failed ``init`` aborts startup.
    """
    service: SearchService = app.state.service
    log.info("api.starting", version=app.version, index=service.settings.index)
    await service.dispatch(INIT_OPERATION)
    try:
        yield
    finally:
        await service.close()
        log.info("api.stopped")


def get_service(request: Request) -> SearchService:
    return request.app.state.service


Service = Annotated[SearchService, Depends(get_service)]


def _jsonable(result: Any) -> Any:
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


def create_app(
    *,
    service: SearchService | None = None,
    settings: SearchSpineSettings | None = None,
) -> FastAPI:
    """Build and return a configured FastAPI application.

    Parameters
    ----------
    service : SearchService | None
        Pre-built service (useful for testing). When ``None`` one is built
        from ``settings``.
    settings : SearchSpineSettings | None
        Override settings. When ``None`` the cached singleton is used.
    """
    if service is None:
        service = build_service(settings or get_settings())

    app = FastAPI(title="search-spine", version=__version__, lifespan=lifespan)
    app.state.service = service

    app.add_exception_handler(SearchSpineError, search_spine_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.post("/commands/{operation}")
    async def run_command(
        operation: str,
        service: Service,
        args: Annotated[dict[str, Any] | None, Body()] = None,
    ) -> dict[str, Any]:
        result = await service.dispatch(operation, args or {})
        return {"operation": operation, "result": _jsonable(result)}

    @app.get("/health")
    async def health(service: Service) -> dict[str, Any]:
        ready = service.router.ready
        return {
            "status": "ok" if ready else "initializing",
            "ready": ready,
            "index": service.settings.index,
            "operations": service.router.operations(),
        }

    return app
