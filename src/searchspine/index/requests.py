"""Document request values.

Each step of a record operation takes a :class:`DocumentRequest` and
returns a new one; nothing is mutated in place. Handlers compose the
steps with plain sequential calls::

    request = build_request(index, args, refresh=settings.refresh_on_save)
    request = with_body(request, args["data"])
    request = with_id(request, args.get("id") or args["data"].get("id"))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from searchspine.core.entity import TYPE_FIELD, type_from_tag
from searchspine.core.errors import MissingRequiredFieldError


@dataclass(frozen=True)
class DocumentRequest:
    """Addressing and payload for one engine document call."""

    index: str
    doc_type: str
    doc_id: str | None = None
    body: Mapping[str, Any] = field(default_factory=dict)
    refresh: bool = False


def resolve_type(args: Mapping[str, Any]) -> str:
    """Entity type from ``type`` or from the data's type tag."""
    explicit = type_from_tag(args.get("type"))
    if explicit:
        return explicit
    data = args.get("data")
    derived = type_from_tag(data.get(TYPE_FIELD)) if isinstance(data, Mapping) else None
    if not derived:
        raise MissingRequiredFieldError(
            "type",
            f'expected either "type" or "data.{TYPE_FIELD}" to deduce the entity type',
        )
    return derived


def build_request(index: str, args: Mapping[str, Any], *, refresh: bool = False) -> DocumentRequest:
    """Start a request addressed to ``index`` and the resolved type."""
    if not index:
        raise MissingRequiredFieldError("index")
    return DocumentRequest(index=index, doc_type=resolve_type(args), refresh=refresh)


def with_id(request: DocumentRequest, doc_id: Any) -> DocumentRequest:
    return replace(request, doc_id=None if doc_id in (None, "") else str(doc_id))


def with_body(request: DocumentRequest, body: Mapping[str, Any]) -> DocumentRequest:
    return replace(request, body=dict(body))


def require_id(request: DocumentRequest) -> DocumentRequest:
    """Fail fast when an operation must address a single document."""
    if request.doc_id is None:
        raise MissingRequiredFieldError("id").with_context(entity_type=request.doc_type)
    return request
