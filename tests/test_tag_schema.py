"""
Tests for the versioned tag schema.
"""

import pytest

from artregistry.errors import SchemaViolationError
from artregistry.ingestion.tag_schema import TagSchema, TagType, format_number


class TestFormatNumber:

    @pytest.mark.parametrize("value,expected", [
        (2.50, "2.5"),
        (3.0, "3"),
        (12, "12"),
        (0.0, "0"),
        (1e3, "1000"),
    ])
    def test_trims_trailing_zeros(self, value, expected):
        assert format_number(value) == expected


class TestDefaultSchema:

    def test_loads_versioned_document(self, tag_schema):
        assert tag_schema.version == "2025.10.1"
        assert "material" in tag_schema
        assert "start_date" in tag_schema
        assert "city" in tag_schema
        assert "primarymaterial" not in tag_schema

    def test_definitions_are_read_only(self, tag_schema):
        with pytest.raises(TypeError):
            tag_schema.definitions["new_key"] = None

    def test_unknown_key_is_violation(self, tag_schema):
        with pytest.raises(SchemaViolationError) as exc_info:
            tag_schema.coerce("not_a_tag", "x")
        assert exc_info.value.key == "not_a_tag"
        assert exc_info.value.reason == "SCHEMA_VIOLATION"


class TestCoercion:

    def test_text_collapses_whitespace(self, tag_schema):
        assert tag_schema.coerce("material", "  cast   bronze ") == "cast bronze"

    def test_text_stringifies_numbers(self, tag_schema):
        assert tag_schema.coerce("dimensions", 2.50) == "2.5"

    def test_text_max_length(self, tag_schema):
        with pytest.raises(SchemaViolationError):
            tag_schema.coerce("style", "x" * 101)

    def test_empty_text_rejected(self, tag_schema):
        with pytest.raises(SchemaViolationError):
            tag_schema.coerce("material", "   ")

    @pytest.mark.parametrize("value,expected", [
        ("1988", "1988"),
        (1988, "1988"),
        ("2001-06", "2001-06"),
        ("2001-06-15", "2001-06-15"),
        ("circa 1975", "1975"),
    ])
    def test_dates(self, tag_schema, value, expected):
        assert tag_schema.coerce("start_date", value) == expected

    def test_undated_value_rejected(self, tag_schema):
        with pytest.raises(SchemaViolationError):
            tag_schema.coerce("start_date", "unknown")

    def test_enum_is_case_and_separator_insensitive(self, tag_schema):
        assert tag_schema.coerce("status", "In Place") == "in_place"
        assert tag_schema.coerce("artwork_type", "street-art") == "street_art"

    def test_enum_rejects_unknown_value(self, tag_schema):
        with pytest.raises(SchemaViolationError):
            tag_schema.coerce("condition", "pristine")

    def test_yes_no(self, tag_schema):
        assert tag_schema.coerce("fee", True) == "yes"
        assert tag_schema.coerce("fee", "N") == "no"

    def test_url_requires_absolute_http(self, tag_schema):
        assert tag_schema.coerce("website", "https://example.org/a") == "https://example.org/a"
        with pytest.raises(SchemaViolationError):
            tag_schema.coerce("website", "/relative/page")


class TestFromDict:

    def test_number_type(self):
        schema = TagSchema.from_dict({
            "version": "1",
            "tags": {"height_m": {"type": "number"}},
        })
        assert schema.get("height_m").type == TagType.NUMBER
        assert schema.coerce("height_m", "3.0") == 3
        assert schema.coerce("height_m", 2.5) == 2.5

    def test_enum_without_values_rejected(self):
        with pytest.raises(ValueError):
            TagSchema.from_dict({"version": "1", "tags": {"kind": {"type": "enum"}}})

    def test_missing_version_rejected(self):
        with pytest.raises(ValueError):
            TagSchema.from_dict({"tags": {"a": {"type": "text"}}})

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text(
            'version: "2"\n'
            "tags:\n"
            "  material:\n"
            "    type: text\n"
        )
        schema = TagSchema.load(path)
        assert schema.version == "2"
        assert schema.keys() == frozenset({"material"})
