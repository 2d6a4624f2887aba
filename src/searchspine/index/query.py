"""Search request compilation.

Turns a :class:`SearchRequest` into the request body the engine
understands. A caller-supplied structured body is used verbatim; free
text becomes a query requiring every term; with neither, everything
matches.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from searchspine.core.entity import type_from_tag
from searchspine.core.errors import ValidationError


@dataclass(frozen=True)
class SearchRequest:
    """One search, before compilation."""

    entity_type: str | None = None
    query_text: str | None = None
    structured: Mapping[str, Any] | None = field(default=None, hash=False)
    size: int | None = None
    offset: int | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> SearchRequest:
        """Build from inbound operation arguments.

        ``query`` carries a structured body when it is a mapping and free
        text when it is a string; ``queryText`` / ``query_text`` is always
        free text.
        """
        query = args.get("query")
        text = args.get("query_text", args.get("queryText"))
        structured = None
        if isinstance(query, Mapping):
            structured = query
        elif isinstance(query, str) and text is None:
            text = query
        elif query is not None:
            raise ValidationError(f"query must be a mapping or a string, got {type(query).__name__}")
        if text is not None and not isinstance(text, str):
            raise ValidationError("queryText must be a string")
        return cls(
            entity_type=type_from_tag(args.get("type")),
            query_text=text,
            structured=structured,
            size=_optional_int(args, "size"),
            offset=_optional_int(args, "from"),
        )


def _optional_int(args: Mapping[str, Any], key: str) -> int | None:
    value = args.get(key)
    if value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{key} must be an integer", cause=e) from e
    if number < 0:
        raise ValidationError(f"{key} must not be negative")
    return number


def match_all() -> dict[str, Any]:
    return {"match_all": {}}


def match_all_terms(text: str) -> dict[str, Any]:
    return {"simple_query_string": {"query": text, "default_operator": "and"}}


def compile_query(request: SearchRequest) -> dict[str, Any]:
    """Compile a request into an engine search body."""
    if request.structured is not None:
        body = dict(request.structured)
    elif request.query_text:
        body = {"query": match_all_terms(request.query_text)}
    else:
        body = {"query": match_all()}

    if request.size is not None:
        body["size"] = request.size
    if request.offset is not None:
        body["from"] = request.offset
    return body
