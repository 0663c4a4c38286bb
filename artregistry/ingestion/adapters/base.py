"""
Shared behaviour for JSON-export adapters.

Subclasses implement _iter_items() (payload -> candidate items) and
_parse_item() (one item -> RawImportRecord). A SourceFormatError from
_parse_item rejects just that item; from _iter_items it rejects the
whole payload.
"""

import json
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator, Optional, Union
from urllib.parse import urljoin, urlparse

from ...errors import SourceFormatError
from ...models.enums import SourceKind
from ..protocols import AdapterOutput, RawImportRecord, RejectedRecord
from ..sources import SourceMapping, get_mapping

logger = logging.getLogger(__name__)


def parse_modified(value: Any) -> Optional[date]:
    """Parse a source-side modification timestamp; unknown formats give None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug(f"Unparseable modification date: {value!r}")
        return None


def parse_coordinate(value: Any, name: str, limit: float) -> float:
    """Validate a latitude/longitude value."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise SourceFormatError(f"{name} must be a number", field=name)
    try:
        number = float(value)
    except ValueError:
        raise SourceFormatError(f"{name} must be a number, got {value!r}", field=name)
    if math.isnan(number) or not -limit <= number <= limit:
        raise SourceFormatError(f"{name} out of range: {number}", field=name)
    return number


def geojson_point(geometry: Any) -> tuple[Optional[float], Optional[float]]:
    """Extract (lat, lon) from a GeoJSON Point; null geometry gives (None, None)."""
    if geometry is None:
        return None, None
    if not isinstance(geometry, dict) or geometry.get("type") != "Point":
        raise SourceFormatError("geometry must be a GeoJSON Point", field="geometry")
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        raise SourceFormatError("Point coordinates must be [lon, lat]", field="geometry")
    lon = parse_coordinate(coordinates[0], "lon", 180)
    lat = parse_coordinate(coordinates[1], "lat", 90)
    return lat, lon


def absolute_photo_url(value: Any, base_url: Optional[str]) -> Optional[str]:
    """
    Resolve a photo reference to an absolute http(s) URL.

    Relative paths are joined onto base_url; anything that still is not an
    absolute http(s) URL is dropped.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    url = value.strip()
    if base_url and not urlparse(url).scheme:
        url = urljoin(base_url.rstrip("/") + "/", url)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        logger.warning(f"Dropping photo reference that is not an absolute URL: {value!r}")
        return None
    return url


def require_external_id(value: Any, name: str) -> str:
    if isinstance(value, bool) or value is None:
        raise SourceFormatError(f"Missing required field '{name}'", field=name)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, (int, str)):
        raise SourceFormatError(f"'{name}' must be a string or integer", field=name)
    external_id = str(value).strip()
    if not external_id:
        raise SourceFormatError(f"Missing required field '{name}'", field=name)
    return external_id


class JsonSourceAdapter:
    """Base class for adapters that read a JSON export."""

    source_kind: SourceKind

    def __init__(self) -> None:
        self.mapping: SourceMapping = get_mapping(self.source_kind)

    def load(self, path: Union[str, Path]) -> Any:
        """Read and decode a JSON export."""
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise SourceFormatError(f"{path} is not valid JSON: {e}", path=str(path))

    def parse(self, payload: Any) -> AdapterOutput:
        output = AdapterOutput()
        for index, item in enumerate(self._iter_items(payload)):
            try:
                output.records.append(self._parse_item(item))
            except SourceFormatError as e:
                external_id = self._peek_id(item)
                logger.warning(
                    f"[{self.source_kind.value}] Skipping record #{index}"
                    f"{f' ({external_id})' if external_id else ''}: {e.message}"
                )
                output.rejected.append(
                    RejectedRecord(external_id=external_id, reason=e.message, index=index)
                )
        logger.info(
            f"[{self.source_kind.value}] Parsed {len(output.records)} records, "
            f"rejected {len(output.rejected)}"
        )
        return output

    def _iter_items(self, payload: Any) -> Iterator[Any]:
        raise NotImplementedError

    def _parse_item(self, item: Any) -> RawImportRecord:
        raise NotImplementedError

    def _peek_id(self, item: Any) -> Optional[str]:
        """Best-effort id of a rejected item for the summary."""
        return None

    def _remaining_fields(self, properties: dict) -> dict[str, Any]:
        """Source fields not consumed by the adapter itself."""
        return {
            name: value
            for name, value in properties.items()
            if name not in self.mapping.consumed_fields
        }
