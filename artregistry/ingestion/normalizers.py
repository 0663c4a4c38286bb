"""
Field normalization for artwork ingestion.

Turns a source-native RawImportRecord into a NormalizedArtworkDraft using
the source's SourceMapping and the injected TagSchema. Normalization is
deterministic: the same record always yields the same draft.
"""

import logging
import re
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..errors import SchemaViolationError
from ..models.enums import SourceKind
from .protocols import NormalizedArtworkDraft, RawImportRecord
from .sources import SOURCE_MAPPINGS, SourceMapping
from .tag_schema import TagSchema, format_number

logger = logging.getLogger(__name__)

_MEASUREMENT_RE = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*(.*?)\s*$")


def clean_text(value: Any) -> Optional[str]:
    """Collapse whitespace; empty values become None."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def format_measurement(value: Any) -> Any:
    """
    Stringify a legacy numeric measurement.

    Trailing zero decimals are trimmed and a unit suffix is kept:
        2.50    -> "2.5"
        "3.0 m" -> "3 m"
    Values that do not start with a number are returned unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return format_number(value)
    if not isinstance(value, str):
        return value
    match = _MEASUREMENT_RE.match(value)
    if not match:
        return value
    number, unit = match.groups()
    formatted = format_number(Decimal(number))
    return f"{formatted} {unit}" if unit else formatted


def split_keywords(value: Any) -> list[str]:
    """Split a comma-separated keyword list, deduplicated case-insensitively."""
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple)) else str(value).split(",")
    seen: set[str] = set()
    keywords: list[str] = []
    for item in items:
        keyword = clean_text(item)
        if not keyword:
            continue
        folded = keyword.casefold()
        if folded in seen:
            continue
        seen.add(folded)
        keywords.append(keyword)
    return keywords


class FieldNormalizer:
    """
    Maps source fields onto tag schema keys.

    Rules, per field of the record:
    - a field named in the mapping's renames becomes that tag key; a rename
      whose target is not in the schema is a SchemaViolationError
    - a field already named like a schema key passes through
    - structural fields (title, description parts, keywords) are consumed
    - anything else is dropped with a warning
    Values are then coerced by the schema's declared type.
    """

    def __init__(
        self,
        tag_schema: TagSchema,
        mappings: Mapping[SourceKind, SourceMapping] = SOURCE_MAPPINGS,
    ):
        self.tag_schema = tag_schema
        self._mappings = mappings

    def normalize(self, record: RawImportRecord) -> NormalizedArtworkDraft:
        """
        Normalize one record.

        Raises:
            SchemaViolationError: If a tag key is unknown or a value cannot be coerced
        """
        mapping = self._mappings[record.source_kind]
        fields = record.fields

        title = clean_text(fields.get(mapping.title_field)) or f"Untitled ({record.external_id})"

        return NormalizedArtworkDraft(
            source_kind=record.source_kind,
            external_id=record.external_id,
            title=title,
            description=self._build_description(mapping, fields),
            artist_names=[n for n in (clean_text(a) for a in record.artist_names) if n],
            keywords=split_keywords(fields.get(mapping.keywords_field)) if mapping.keywords_field else [],
            tags=self._build_tags(mapping, record),
            photo_urls=list(dict.fromkeys(u.strip() for u in record.photo_urls if u and u.strip())),
            lat=record.lat,
            lon=record.lon,
        )

    def _build_description(self, mapping: SourceMapping, fields: Mapping[str, Any]) -> Optional[str]:
        parts = []
        for name, label in mapping.description_fields:
            text = clean_text(fields.get(name))
            if text:
                parts.append(f"{label}: {text}" if label else text)
        return "\n\n".join(parts) or None

    def _build_tags(self, mapping: SourceMapping, record: RawImportRecord) -> dict[str, Any]:
        structural = mapping.structural_fields
        tags: dict[str, Any] = {}

        for name, value in record.fields.items():
            if name in structural:
                continue
            if value is None or (isinstance(value, str) and not value.strip()):
                continue

            if name in mapping.renames:
                key = mapping.renames[name]
            elif name in self.tag_schema:
                key = name
            else:
                logger.warning(
                    f"[{record.source_kind.value}] {record.external_id}: "
                    f"dropping unmapped field '{name}'"
                )
                continue

            if key not in self.tag_schema:
                raise SchemaViolationError(
                    f"Field '{name}' maps to tag '{key}', which is not in tag schema "
                    f"{self.tag_schema.version}",
                    key=key,
                    field=name,
                )

            if name in mapping.numeric_fields:
                value = format_measurement(value)

            value_map = mapping.value_maps.get(key)
            if value_map is not None and isinstance(value, str):
                lookup = " ".join(value.split()).casefold()
                if lookup in value_map:
                    value = value_map[lookup]
                    if value is None:
                        continue

            coerced = self.tag_schema.coerce(key, value)
            if key in tags and tags[key] != coerced:
                logger.debug(
                    f"[{record.source_kind.value}] {record.external_id}: "
                    f"keeping {key}={tags[key]!r}, ignoring {name}={coerced!r}"
                )
                continue
            tags[key] = coerced

        for key, value in mapping.constant_tags.items():
            tags[key] = self.tag_schema.coerce(key, value)

        return tags
