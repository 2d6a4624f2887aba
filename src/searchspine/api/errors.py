"""
Error handlers: map search-spine errors to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from searchspine.core.errors import (
    EngineUnreachableError,
    ErrorCategory,
    OperationNotFoundError,
    SearchSpineError,
    ServiceNotReadyError,
)
from searchspine.core.logging import get_logger

logger = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.ROUTING: 404,
    ErrorCategory.ENGINE: 502,
    ErrorCategory.CANONICAL: 502,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.INTERNAL: 500,
}


class ProblemDetail(BaseModel):
    """RFC 7807 problem body."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str = ""
    instance: str = ""
    category: str | None = None
    retryable: bool | None = None
    context: dict[str, Any] | None = None


def status_for_error(error: SearchSpineError) -> int:
    """Resolve an error to an HTTP status, defaulting to 500."""
    if isinstance(error, ServiceNotReadyError | EngineUnreachableError):
        return 503
    if isinstance(error, OperationNotFoundError):
        return 404
    return CATEGORY_TO_STATUS.get(error.category, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    **extra: Any,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance, **extra)
    return JSONResponse(
        status_code=status,
        content=body.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


async def search_spine_error_handler(request: Request, exc: SearchSpineError) -> JSONResponse:
    payload = exc.to_dict()
    return problem_response(
        status=status_for_error(exc),
        title=payload["error_type"],
        detail=exc.message,
        instance=str(request.url),
        category=payload["category"],
        retryable=payload["retryable"],
        context=payload.get("context"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with a generic ProblemDetail."""
    logger.error("api.unhandled_exception", error_type=type(exc).__name__, exc_info=exc)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred.",
        instance=str(request.url),
    )
