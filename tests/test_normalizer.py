"""
Tests for FieldNormalizer and its helpers.
"""

import logging

import pytest

from artregistry.errors import SchemaViolationError
from artregistry.ingestion.normalizers import FieldNormalizer, format_measurement, split_keywords
from artregistry.ingestion.protocols import RawImportRecord
from artregistry.ingestion.sources import RICHMOND, SOURCE_MAPPINGS, SourceMapping, _frozen
from artregistry.models.enums import SourceKind


@pytest.fixture
def normalizer(tag_schema):
    return FieldNormalizer(tag_schema)


def _record(kind, fields, **kwargs):
    return RawImportRecord(source_kind=kind, external_id=kwargs.pop("external_id", "42"), fields=fields, **kwargs)


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [
        (2.50, "2.5"),
        ("3.0 m", "3 m"),
        ("4.50m", "4.5 m"),
        (7, "7"),
        ("approx. 2 m", "approx. 2 m"),
    ])
    def test_format_measurement(self, value, expected):
        assert format_measurement(value) == expected

    def test_split_keywords_dedupes_case_insensitively(self):
        assert split_keywords("Bronze, water ,bronze, , Park,WATER") == ["Bronze", "water", "Park"]

    def test_split_keywords_accepts_lists(self):
        assert split_keywords(["a", "A", "b"]) == ["a", "b"]

    def test_split_keywords_none(self):
        assert split_keywords(None) == []


class TestVancouver:

    def test_renames_material_and_date(self, normalizer):
        record = _record(SourceKind.VANCOUVER, {"primarymaterial": "bronze", "installation_date": "1988"})
        draft = normalizer.normalize(record)
        assert draft.tags == {"material": "bronze", "start_date": "1988"}

    def test_title_and_description(self, normalizer):
        record = _record(SourceKind.VANCOUVER, {
            "title_of_work": "  Digital  Orca ",
            "descriptionofwork": "A pixelated whale.",
            "sitename": "Jack Poole Plaza",
        })
        draft = normalizer.normalize(record)
        assert draft.title == "Digital Orca"
        assert draft.description == "A pixelated whale.\n\nLocation: Jack Poole Plaza"

    def test_missing_title_falls_back(self, normalizer):
        draft = normalizer.normalize(_record(SourceKind.VANCOUVER, {}, external_id="77"))
        assert draft.title == "Untitled (77)"
        assert draft.description is None

    def test_type_value_map(self, normalizer):
        record = _record(SourceKind.VANCOUVER, {"type": "Memorial or monument", "status": "No longer in existence"})
        draft = normalizer.normalize(record)
        assert draft.tags == {"artwork_type": "monument", "status": "removed"}

    def test_unmapped_field_dropped_with_warning(self, normalizer, caplog):
        caplog.set_level(logging.WARNING, logger="artregistry.ingestion.normalizers")
        record = _record(SourceKind.VANCOUVER, {"primarymaterial": "steel", "ward_code": "W3"})
        draft = normalizer.normalize(record)
        assert draft.tags == {"material": "steel"}
        assert "dropping unmapped field 'ward_code'" in caplog.text

    def test_schema_key_passes_through(self, normalizer):
        draft = normalizer.normalize(_record(SourceKind.VANCOUVER, {"condition": "Good"}))
        assert draft.tags == {"condition": "good"}

    def test_first_source_field_wins(self, normalizer):
        record = _record(SourceKind.VANCOUVER, {"installation_date": "1988", "yearofinstallation": "1990"})
        assert normalizer.normalize(record).tags == {"start_date": "1988"}

    def test_uncoercible_value_is_violation(self, normalizer):
        record = _record(SourceKind.VANCOUVER, {"type": "Hologram"})
        with pytest.raises(SchemaViolationError) as exc_info:
            normalizer.normalize(record)
        assert exc_info.value.key == "artwork_type"

    def test_photo_urls_deduplicated(self, normalizer):
        record = _record(
            SourceKind.VANCOUVER, {},
            photo_urls=["https://a.example/1.jpg", "https://a.example/1.jpg", "https://a.example/2.jpg"],
        )
        assert normalizer.normalize(record).photo_urls == [
            "https://a.example/1.jpg", "https://a.example/2.jpg",
        ]

    def test_is_deterministic(self, normalizer):
        record = _record(
            SourceKind.VANCOUVER,
            {"primarymaterial": "bronze", "type": "Sculpture", "title_of_work": "Gate"},
            artist_names=["Ann Lee"],
        )
        assert normalizer.normalize(record) == normalizer.normalize(record)


class TestBurnaby:

    def test_constant_city_tag(self, normalizer):
        record = _record(SourceKind.BURNABY, {"medium": "steel", "date": "2001", "name": "Arc"})
        draft = normalizer.normalize(record)
        assert draft.tags == {"material": "steel", "start_date": "2001", "city": "burnaby"}
        assert draft.title == "Arc"

    def test_unknown_type_dropped(self, normalizer):
        record = _record(SourceKind.BURNABY, {"artwork_type": "Unknown"})
        assert normalizer.normalize(record).tags == {"city": "burnaby"}

    def test_keywords(self, normalizer):
        record = _record(SourceKind.BURNABY, {"keywords": "Bronze, bronze, figure"})
        assert normalizer.normalize(record).keywords == ["Bronze", "figure"]


class TestRichmond:

    def test_height_becomes_dimensions_string(self, normalizer):
        record = _record(SourceKind.RICHMOND, {"height": 2.50, "materials": "cedar"})
        draft = normalizer.normalize(record)
        assert draft.tags == {"dimensions": "2.5", "material": "cedar", "city": "richmond"}

    def test_height_with_unit(self, normalizer):
        record = _record(SourceKind.RICHMOND, {"height": "3.0 m"})
        assert normalizer.normalize(record).tags["dimensions"] == "3 m"


class TestSchemaViolation:

    def test_rename_to_unknown_key(self, tag_schema):
        mapping = SourceMapping(
            kind=SourceKind.RICHMOND,
            renames=_frozen({"colour": "colour"}),
        )
        mappings = dict(SOURCE_MAPPINGS)
        mappings[SourceKind.RICHMOND] = mapping
        normalizer = FieldNormalizer(tag_schema, mappings=mappings)
        with pytest.raises(SchemaViolationError) as exc_info:
            normalizer.normalize(_record(SourceKind.RICHMOND, {"colour": "red"}))
        assert exc_info.value.key == "colour"

    def test_default_mappings_only_target_schema_keys(self, tag_schema):
        for mapping in SOURCE_MAPPINGS.values():
            for target in mapping.renames.values():
                assert target in tag_schema
            for key in mapping.constant_tags:
                assert key in tag_schema
        assert RICHMOND.numeric_fields == frozenset({"height"})
