"""Tests for searchspine.index.projection."""

import pytest

from searchspine.core.settings import EntityDeclaration
from searchspine.index.projection import (
    EXACT_MATCH,
    ProjectionConfig,
    ProjectionRule,
)


@pytest.fixture
def config():
    return ProjectionConfig.from_declarations([
        EntityDeclaration(
            base="sys",
            name="user",
            indexed_attributes={"email": {"type": "keyword"}, "display_name": True, "password": False},
        ),
        EntityDeclaration(name="note", indexed_attributes=["a"]),
    ])


class TestProjectionRule:
    def test_false_rule_is_not_indexed(self, config):
        rule = config.rule_for("sys_user")
        assert rule.indexed_attributes == ("email", "display_name")

    def test_only_descriptors_become_mappings(self, config):
        assert dict(config.rule_for("sys_user").mapping) == {"email": {"type": "keyword"}}

    def test_required_fields_always_exact_match(self):
        rule = ProjectionRule.from_declaration(
            EntityDeclaration(name="x", indexed_attributes={"id": {"type": "text"}})
        )
        properties = rule.properties()
        assert properties["id"] == EXACT_MATCH
        assert properties["entity_type"] == EXACT_MATCH


class TestProjectionConfig:
    def test_entity_types(self, config):
        assert config.entity_types == ["sys_user", "note"]
        assert "note" in config
        assert "other" not in config
        assert len(config) == 2

    def test_project_keeps_configured_fields(self):
        config = ProjectionConfig.from_declarations(
            [EntityDeclaration(name="note", indexed_attributes=["a"])]
        )
        document = config.project("note", "7", {"a": 1, "b": 2})
        assert document == {"a": 1, "id": "7", "entity_type": "note"}

    def test_project_skips_absent_fields(self, config):
        document = config.project("sys_user", "1", {"email": "a@b.c"})
        assert document == {"email": "a@b.c", "id": "1", "entity_type": "sys_user"}

    def test_project_overrides_id_and_type_in_fields(self, config):
        document = config.project("note", "7", {"a": 1, "id": "spoofed", "entity_type": "other"})
        assert document["id"] == "7"
        assert document["entity_type"] == "note"

    def test_unconfigured_type_projects_only_required(self, config):
        assert config.project("other", "1", {"a": 1}) == {"id": "1", "entity_type": "other"}

    def test_mapping_for_includes_required(self, config):
        mapping = config.mapping_for("sys_user")
        assert mapping == {
            "email": {"type": "keyword"},
            "id": {"type": "keyword"},
            "entity_type": {"type": "keyword"},
        }

    def test_mapping_for_unknown_type(self, config):
        assert set(config.mapping_for("other")) == {"id", "entity_type"}
