"""Entity type keys.

An entity type is addressed by optional ``zone`` and ``base`` segments and
a required ``name``. The index uses a single composite key built from them
(``zone_base_name``); canonical records refer to their type with the
slash form ``zone/base/name`` where ``-`` marks a missing segment.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from searchspine.core.logging import get_logger

logger = get_logger(__name__)

ID_FIELD = "id"
TYPE_FIELD = "entity_type"

# Returned for descriptors without a name. Not a real type.
UNDEFINED_NAME = "undefined"

_SEPARATOR = "_"
_CANON_SEPARATOR = "/"
_CANON_MISSING = "-"
_KEY_SEPARATOR = ":"


def entity_type_key(
    zone: str | None = None,
    base: str | None = None,
    name: str | None = None,
) -> str:
    """Compose the index key for an entity type.

    >>> entity_type_key(base="sys", name="user")
    'sys_user'
    >>> entity_type_key(zone="eu", base="sys", name="user")
    'eu_sys_user'
    """
    parts = [segment for segment in (zone, base) if segment]
    if not name:
        logger.warning("entity.name_missing", zone=zone, base=base)
        name = UNDEFINED_NAME
    parts.append(name)
    return _SEPARATOR.join(parts)


@dataclass(frozen=True)
class EntityDescriptor:
    """Identifies a class of canonical record."""

    zone: str | None = None
    base: str | None = None
    name: str | None = None

    @property
    def key(self) -> str:
        return entity_type_key(self.zone, self.base, self.name)

    @property
    def canon(self) -> str:
        """Slash form used by canonical records (``-/sys/user``)."""
        return _CANON_SEPARATOR.join(
            segment or _CANON_MISSING for segment in (self.zone, self.base, self.name)
        )

    @classmethod
    def from_canon(cls, canon: str) -> EntityDescriptor:
        """Parse ``zone/base/name``; shorter forms fill from the right.

        >>> EntityDescriptor.from_canon("-/sys/user").key
        'sys_user'
        >>> EntityDescriptor.from_canon("user").key
        'user'
        """
        segments = [
            None if part in ("", _CANON_MISSING) else part
            for part in canon.split(_CANON_SEPARATOR)
        ]
        segments = ([None] * 3 + segments)[-3:]
        return cls(zone=segments[0], base=segments[1], name=segments[2])

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EntityDescriptor:
        return cls(
            zone=data.get("zone") or None,
            base=data.get("base") or None,
            name=data.get("name") or None,
        )

    @classmethod
    def coerce(cls, value: Any) -> EntityDescriptor:
        """Accept a descriptor, a ``{zone, base, name}`` mapping or a canon string."""
        if isinstance(value, EntityDescriptor):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        if isinstance(value, str):
            return cls.from_canon(value)
        raise TypeError(f"Cannot build an entity descriptor from {type(value).__name__}")


def type_from_tag(tag: Any) -> str | None:
    """Resolve a document's type tag to an index key.

    Tags written by this service are already keys; canonical slash forms
    are converted.
    """
    if not tag or not isinstance(tag, str):
        return None
    if _CANON_SEPARATOR in tag:
        return EntityDescriptor.from_canon(tag).key
    return tag


def document_key(entity_type: str, entity_id: Any) -> str:
    """Engine-side address of one entity's document.

    Canonical ids are only unique within a type, and the index holds every
    type, so the engine ``_id`` carries both.

    >>> document_key("sys_user", 7)
    'sys_user:7'
    """
    return f"{entity_type}{_KEY_SEPARATOR}{entity_id}"


def entity_id_from_key(key: str, entity_type: str | None) -> str:
    """Strip the type prefix :func:`document_key` added."""
    prefix = f"{entity_type}{_KEY_SEPARATOR}" if entity_type else None
    if prefix and key.startswith(prefix):
        return key[len(prefix):]
    return key
