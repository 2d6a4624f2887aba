"""Core primitives: entity keys, errors, logging, settings and capability protocols."""

from searchspine.core.entity import ID_FIELD, TYPE_FIELD, EntityDescriptor, entity_type_key
from searchspine.core.errors import (
    CanonicalLookupError,
    CanonicalStoreError,
    ConfigError,
    EngineError,
    EngineUnreachableError,
    ErrorCategory,
    ErrorContext,
    MappingApplicationError,
    MissingRequiredFieldError,
    OperationNotFoundError,
    SearchSpineError,
    ServiceNotReadyError,
    ValidationError,
)
from searchspine.core.protocols import CanonicalStore, SearchEngine

__all__ = [
    "ID_FIELD",
    "TYPE_FIELD",
    "EntityDescriptor",
    "entity_type_key",
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
    "SearchEngine",
    "CanonicalStore",
]
