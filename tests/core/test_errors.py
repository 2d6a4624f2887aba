"""Tests for searchspine.core.errors."""

from searchspine.core.errors import (
    CanonicalLookupError,
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
    is_retryable,
)


class TestErrorContext:
    def test_empty_context(self):
        assert ErrorContext().to_dict() == {}

    def test_to_dict_skips_none_and_merges_metadata(self):
        ctx = ErrorContext(index="records", metadata={"http_status": 503})
        assert ctx.to_dict() == {"index": "records", "http_status": 503}


class TestSearchSpineError:
    def test_defaults(self):
        e = SearchSpineError("boom")
        assert e.category == ErrorCategory.INTERNAL
        assert e.retryable is False
        assert str(e) == "boom"

    def test_with_context_is_fluent(self):
        e = EngineError("down").with_context(index="records", attempt=2)
        assert e.context.index == "records"
        assert e.context.metadata == {"attempt": 2}

    def test_cause_is_chained(self):
        cause = RuntimeError("socket closed")
        e = EngineError("down", cause=cause)
        assert e.__cause__ is cause
        assert e.to_dict()["cause"] == "socket closed"

    def test_to_dict(self):
        d = ValidationError("bad").with_context(entity_type="sys_user").to_dict()
        assert d["error_type"] == "ValidationError"
        assert d["category"] == "VALIDATION"
        assert d["retryable"] is False
        assert d["context"] == {"entity_type": "sys_user"}


class TestSubclasses:
    def test_engine_errors_are_retryable(self):
        assert is_retryable(EngineError("x"))
        assert is_retryable(EngineUnreachableError("x"))

    def test_retryable_can_be_overridden(self):
        assert not is_retryable(EngineError("x", retryable=False))

    def test_mapping_failure_lists_types(self):
        e = MappingApplicationError({"b": "conflict", "a": "timeout"})
        assert "a, b" in e.message
        assert e.to_dict()["failures"] == {"b": "conflict", "a": "timeout"}
        assert not e.retryable

    def test_missing_field(self):
        e = MissingRequiredFieldError("id")
        assert e.field == "id"
        assert isinstance(e, ValidationError)
        assert e.to_dict()["field"] == "id"

    def test_lookup_error_category(self):
        assert CanonicalLookupError("x").category == ErrorCategory.CANONICAL

    def test_routing_errors(self):
        assert OperationNotFoundError("nope.op").operation_name == "nope.op"
        assert ServiceNotReadyError("x").retryable

    def test_plain_exceptions_are_not_retryable(self):
        assert not is_retryable(RuntimeError("x"))
