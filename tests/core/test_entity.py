"""Tests for searchspine.core.entity."""

import pytest

from searchspine.core.entity import (
    UNDEFINED_NAME,
    EntityDescriptor,
    document_key,
    entity_id_from_key,
    entity_type_key,
    type_from_tag,
)


class TestEntityTypeKey:
    def test_full_descriptor(self):
        assert entity_type_key("eu", "sys", "user") == "eu_sys_user"

    def test_missing_zone_is_skipped(self):
        assert entity_type_key(base="sys", name="user") == "sys_user"

    def test_name_only(self):
        assert entity_type_key(name="user") == "user"

    def test_missing_name_falls_back(self):
        assert entity_type_key(base="sys") == f"sys_{UNDEFINED_NAME}"


class TestEntityDescriptor:
    def test_key_and_canon(self):
        d = EntityDescriptor(base="sys", name="user")
        assert d.key == "sys_user"
        assert d.canon == "-/sys/user"

    def test_from_canon_pads_from_the_right(self):
        assert EntityDescriptor.from_canon("user") == EntityDescriptor(name="user")
        assert EntityDescriptor.from_canon("sys/user") == EntityDescriptor(base="sys", name="user")

    def test_canon_roundtrip_with_missing_segments(self):
        d = EntityDescriptor(zone="eu", name="ticket")
        assert EntityDescriptor.from_canon(d.canon) == d

    def test_from_mapping_drops_empty_segments(self):
        d = EntityDescriptor.from_mapping({"zone": "", "base": "sys", "name": "user"})
        assert d.zone is None
        assert d.key == "sys_user"

    def test_coerce_accepts_all_forms(self):
        d = EntityDescriptor(base="sys", name="user")
        assert EntityDescriptor.coerce(d) is d
        assert EntityDescriptor.coerce({"base": "sys", "name": "user"}) == d
        assert EntityDescriptor.coerce("-/sys/user") == d

    def test_coerce_rejects_other_types(self):
        with pytest.raises(TypeError):
            EntityDescriptor.coerce(42)

    def test_is_hashable(self):
        assert len({EntityDescriptor(name="a"), EntityDescriptor(name="a")}) == 1


class TestTypeFromTag:
    def test_key_passes_through(self):
        assert type_from_tag("sys_user") == "sys_user"

    def test_slash_form_is_converted(self):
        assert type_from_tag("-/sys/user") == "sys_user"

    @pytest.mark.parametrize("tag", [None, "", 7, {"name": "user"}])
    def test_unusable_tags(self, tag):
        assert type_from_tag(tag) is None


class TestDocumentKey:
    def test_type_and_id(self):
        assert document_key("sys_user", 7) == "sys_user:7"
        assert document_key("sys_user", "1") != document_key("eu_ops_ticket", "1")

    def test_strip_prefix(self):
        assert entity_id_from_key("sys_user:7", "sys_user") == "7"
        assert entity_id_from_key("sys_user:a:b", "sys_user") == "a:b"

    def test_foreign_key_left_alone(self):
        assert entity_id_from_key("7", "sys_user") == "7"
        assert entity_id_from_key("note:7", None) == "note:7"
