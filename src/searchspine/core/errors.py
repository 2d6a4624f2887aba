"""
Structured error types for search-spine.

Every failure the service can surface is a :class:`SearchSpineError`
subclass carrying a category, a retry flag, structured context and the
chained library exception that caused it.

Manifesto:
    Startup, engine, canonical-store and request-validation failures are
    distinct types so callers (the router, the HTTP layer, the CLI) can
    decide what to do from the type alone. Library exceptions never
    escape an adapter unwrapped; they travel as ``cause``.

Architecture:
    ::

        SearchSpineError (category, retryable, context, cause)
        ├── EngineError                 ENGINE, retryable
        │   ├── EngineUnreachableError
        │   └── MappingApplicationError  failures: {entity_type: message}
        ├── CanonicalStoreError         CANONICAL
        │   └── CanonicalLookupError
        ├── ValidationError             VALIDATION
        │   └── MissingRequiredFieldError  field
        ├── ConfigError                 CONFIG
        ├── OperationNotFoundError      ROUTING
        └── ServiceNotReadyError        ROUTING, retryable

Examples:
    >>> error = EngineError("search failed").with_context(index="records")
    >>> error.retryable
    True
    >>> error.context.index
    'records'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories.

    The HTTP layer picks a status code from the category.

    Attributes:
        ENGINE: Search engine calls (index, mapping, query)
        CANONICAL: Canonical record store calls
        VALIDATION: Malformed or incomplete requests
        CONFIG: Missing or invalid settings
        ROUTING: Unknown operation or service not initialized
        INTERNAL: Bugs, unexpected state
    """

    ENGINE = "ENGINE"
    CANONICAL = "CANONICAL"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    ROUTING = "ROUTING"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Where an error happened.

    Keys without a typed field land in ``metadata``; :meth:`to_dict`
    flattens both and drops unset fields.
    """

    operation: str | None = None
    index: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        flat = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "metadata" and getattr(self, f.name) is not None
        }
        return {**flat, **self.metadata}


_CONTEXT_FIELDS = frozenset(f.name for f in fields(ErrorContext)) - {"metadata"}


class SearchSpineError(Exception):
    """
    Base exception for all search-spine errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.

    Examples:
        >>> error = SearchSpineError("boom")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context if context is not None else ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SearchSpineError:
        """
        Attach context and return ``self``, so it can be chained on raise::

            raise EngineError("index failed").with_context(
                index="records",
                entity_type="sys_user",
            )
        """
        for key, value in kwargs.items():
            if key in _CONTEXT_FIELDS:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for log events and problem responses."""
        payload: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            payload["context"] = context
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"



# =============================================================================
# SEARCH ENGINE ERRORS
# =============================================================================


class EngineError(SearchSpineError):
    """A call to the search engine failed."""

    default_category = ErrorCategory.ENGINE
    default_retryable = True


class EngineUnreachableError(EngineError):
    """The engine did not answer the startup ping."""


class MappingApplicationError(EngineError):
    """One or more per-type mapping calls failed.

    ``failures`` maps each failed entity type to its error message. Types
    missing from it were applied successfully.
    """

    default_retryable = False

    def __init__(self, failures: dict[str, str], message: str | None = None, **kwargs: Any):
        self.failures = dict(failures)
        names = ", ".join(sorted(self.failures))
        super().__init__(message or f"Mapping failed for entity types: {names}", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["failures"] = self.failures
        return result


# =============================================================================
# CANONICAL STORE ERRORS
# =============================================================================


class CanonicalStoreError(SearchSpineError):
    """A call to the canonical record store failed."""

    default_category = ErrorCategory.CANONICAL
    default_retryable = False


class CanonicalLookupError(CanonicalStoreError):
    """The batched read used for reconciliation failed."""


# =============================================================================
# VALIDATION / CONFIG ERRORS
# =============================================================================


class ValidationError(SearchSpineError):
    """
    Request validation error.

    Never retryable - the request must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class MissingRequiredFieldError(ValidationError):
    """A request lacks a derivable type or a required id."""

    def __init__(self, field: str, message: str | None = None, **kwargs: Any):
        self.field = field
        super().__init__(message or f"Missing required field: {field}", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        return result


class ConfigError(SearchSpineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# ROUTING ERRORS
# =============================================================================


class OperationNotFoundError(SearchSpineError):
    """No handler is registered for the operation."""

    default_category = ErrorCategory.ROUTING

    def __init__(self, name: str):
        self.operation_name = name
        super().__init__(f"Operation not found: {name}")


class ServiceNotReadyError(SearchSpineError):
    """An operation arrived before ``init`` completed."""

    default_category = ErrorCategory.ROUTING
    default_retryable = True


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, SearchSpineError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SearchSpineError",
    "EngineError",
    "EngineUnreachableError",
    "MappingApplicationError",
    "CanonicalStoreError",
    "CanonicalLookupError",
    "ValidationError",
    "MissingRequiredFieldError",
    "ConfigError",
    "OperationNotFoundError",
    "ServiceNotReadyError",
    "is_retryable",
]
