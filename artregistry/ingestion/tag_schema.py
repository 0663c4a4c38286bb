"""
Versioned tag schema for artwork records.

The schema is loaded once from YAML into an immutable TagSchema and passed
explicitly to the FieldNormalizer. Schema changes (a new key, a key changing
type) are deployed by editing the YAML document; no pipeline code changes
are needed beyond the per-source rename tables in sources.py.

Value types:
    text     - trimmed string, optional max_length
    number   - int or float
    date     - YYYY, YYYY-MM or YYYY-MM-DD
    enum     - one of the declared values (case/space/hyphen-insensitive)
    yes_no   - "yes" or "no"
    url      - absolute http(s) URL
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse

import yaml

from ..errors import SchemaViolationError

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"(?<!\d)(\d{4})(?:-(\d{2})(?:-(\d{2}))?)?(?!\d)")
_ENUM_SEPARATORS_RE = re.compile(r"[\s\-]+")
_YES = {"yes", "y", "true", "1"}
_NO = {"no", "n", "false", "0"}

TagValue = Union[str, int, float]


class TagType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    ENUM = "enum"
    YES_NO = "yes_no"
    URL = "url"


def format_number(value: Union[int, float, Decimal]) -> str:
    """Stringify a number with trailing zero decimals trimmed (2.50 -> "2.5", 3.0 -> "3")."""
    try:
        d = Decimal(str(value)).normalize()
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    text = format(d, "f")
    return "0" if text in ("-0", "0") else text


@dataclass(frozen=True)
class TagDefinition:
    """One key of the tag schema."""
    key: str
    type: TagType
    label: str = ""
    values: tuple[str, ...] = ()
    max_length: Optional[int] = None

    def coerce(self, value: Any) -> TagValue:
        """
        Coerce a raw value to this tag's canonical form.

        Raises:
            SchemaViolationError: If the value cannot be represented
        """
        try:
            return _COERCERS[self.type](self, value)
        except (TypeError, ValueError) as e:
            raise SchemaViolationError(
                f"Cannot coerce {value!r} for tag '{self.key}' ({self.type.value}): {e}",
                key=self.key,
                value=repr(value),
            )


def _coerce_text(definition: TagDefinition, value: Any) -> str:
    if isinstance(value, bool):
        text = "yes" if value else "no"
    elif isinstance(value, (int, float, Decimal)):
        text = format_number(value)
    elif isinstance(value, str):
        text = " ".join(value.split())
    else:
        raise TypeError(f"expected a scalar, got {type(value).__name__}")
    if not text:
        raise ValueError("empty value")
    if definition.max_length is not None and len(text) > definition.max_length:
        raise ValueError(f"longer than {definition.max_length} characters")
    return text


def _coerce_number(definition: TagDefinition, value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers")
    if isinstance(value, str):
        value = float(value.strip())
    if not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _coerce_date(definition: TagDefinition, value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        raise TypeError("booleans are not dates")
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        raise TypeError(f"expected a date, got {type(value).__name__}")
    match = _DATE_RE.search(value)
    if not match:
        raise ValueError("no YYYY[-MM[-DD]] date found")
    return match.group(0)


def _coerce_enum(definition: TagDefinition, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    canonical = _ENUM_SEPARATORS_RE.sub("_", value.strip().lower()).strip("_")
    if canonical not in definition.values:
        raise ValueError(f"not one of {', '.join(definition.values)}")
    return canonical


def _coerce_yes_no(definition: TagDefinition, value: Any) -> str:
    text = str(value).strip().lower()
    if text in _YES:
        return "yes"
    if text in _NO:
        return "no"
    raise ValueError("expected yes or no")


def _coerce_url(definition: TagDefinition, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("expected an absolute http(s) URL")
    return url


_COERCERS = {
    TagType.TEXT: _coerce_text,
    TagType.NUMBER: _coerce_number,
    TagType.DATE: _coerce_date,
    TagType.ENUM: _coerce_enum,
    TagType.YES_NO: _coerce_yes_no,
    TagType.URL: _coerce_url,
}


@dataclass(frozen=True)
class TagSchema:
    """Immutable, versioned set of tag definitions."""
    version: str
    definitions: Mapping[str, TagDefinition]

    def __contains__(self, key: object) -> bool:
        return key in self.definitions

    def keys(self) -> frozenset[str]:
        return frozenset(self.definitions)

    def get(self, key: str) -> Optional[TagDefinition]:
        return self.definitions.get(key)

    def coerce(self, key: str, value: Any) -> TagValue:
        """Coerce a value for a schema key; unknown keys are a violation."""
        definition = self.definitions.get(key)
        if definition is None:
            raise SchemaViolationError(
                f"Tag key '{key}' is not in tag schema {self.version}",
                key=key,
            )
        return definition.coerce(value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TagSchema":
        """
        Build a schema from its document form.

        Raises:
            ValueError: If the document is malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError("Tag schema document must be a mapping")
        version = data.get("version")
        tags = data.get("tags")
        if not version or not isinstance(tags, Mapping) or not tags:
            raise ValueError("Tag schema needs a 'version' and a non-empty 'tags' mapping")

        definitions: dict[str, TagDefinition] = {}
        for key, spec in tags.items():
            if not isinstance(spec, Mapping) or "type" not in spec:
                raise ValueError(f"Tag '{key}' needs a 'type'")
            tag_type = TagType(spec["type"])
            values = tuple(str(v) for v in spec.get("values", ()))
            if tag_type == TagType.ENUM and not values:
                raise ValueError(f"Enum tag '{key}' declares no values")
            definitions[str(key)] = TagDefinition(
                key=str(key),
                type=tag_type,
                label=spec.get("label", ""),
                values=values,
                max_length=spec.get("max_length"),
            )

        return cls(version=str(version), definitions=MappingProxyType(definitions))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TagSchema":
        """Load a schema from a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        schema = cls.from_dict(data)
        logger.info(f"Loaded tag schema {schema.version} ({len(schema.definitions)} keys) from {path}")
        return schema


def load_default_schema() -> TagSchema:
    """Load the schema at Config.tag_schema_path()."""
    from ..config import Config
    return TagSchema.load(Config.tag_schema_path())
