"""Projection config: which fields of an entity reach the index.

Built once from the entity declarations before the service accepts
traffic. The identifier and the type tag are always projected and always
mapped as ``keyword`` (exact match), whatever the declarations say.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from searchspine.core.entity import ID_FIELD, TYPE_FIELD
from searchspine.core.settings import EntityDeclaration

EXACT_MATCH = {"type": "keyword"}

REQUIRED_PROPERTIES: Mapping[str, Mapping[str, Any]] = MappingProxyType(
    {ID_FIELD: EXACT_MATCH, TYPE_FIELD: EXACT_MATCH}
)


@dataclass(frozen=True)
class ProjectionRule:
    """Field selection and schema for one entity type."""

    entity_type: str
    indexed_attributes: tuple[str, ...] = ()
    mapping: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_declaration(cls, declaration: EntityDeclaration) -> ProjectionRule:
        rules = declaration.indexed_attributes or {}
        attributes = tuple(name for name, rule in rules.items() if rule is not False)
        # True means "engine default schema"; only descriptors become mappings.
        mapping = {
            name: dict(rule)
            for name, rule in rules.items()
            if isinstance(rule, dict)
        }
        return cls(
            entity_type=declaration.descriptor.key,
            indexed_attributes=attributes,
            mapping=MappingProxyType(mapping),
        )

    def properties(self) -> dict[str, dict[str, Any]]:
        """Index properties for this type, required fields included."""
        properties = {name: dict(schema) for name, schema in self.mapping.items()}
        for name, schema in REQUIRED_PROPERTIES.items():
            properties[name] = dict(schema)
        return properties


class ProjectionConfig:
    """Per-entity-type projection rules.

    Example::

        config = ProjectionConfig.from_declarations(settings.entities)
        doc = config.project("sys_user", "42", {"email": "a@b", "password": "x"})
        # {"email": "a@b", "id": "42", "entity_type": "sys_user"}
    """

    def __init__(self, rules: Iterable[ProjectionRule] = ()) -> None:
        self._rules: dict[str, ProjectionRule] = {}
        for rule in rules:
            self._rules[rule.entity_type] = rule

    @classmethod
    def from_declarations(cls, declarations: Iterable[EntityDeclaration]) -> ProjectionConfig:
        return cls(ProjectionRule.from_declaration(d) for d in declarations)

    @property
    def entity_types(self) -> list[str]:
        return list(self._rules)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def rule_for(self, entity_type: str) -> ProjectionRule | None:
        return self._rules.get(entity_type)

    def project(
        self,
        entity_type: str,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Build the index document for an entity."""
        rule = self._rules.get(entity_type)
        attributes = rule.indexed_attributes if rule else ()
        document = {name: fields[name] for name in attributes if name in fields}
        document[ID_FIELD] = entity_id
        document[TYPE_FIELD] = entity_type
        return document

    def mapping_for(self, entity_type: str) -> dict[str, dict[str, Any]]:
        rule = self._rules.get(entity_type) or ProjectionRule(entity_type=entity_type)
        return rule.properties()
