"""
City of Richmond public art registry adapter.

The registry export is a GeoJSON FeatureCollection; geometry is null for
works without a mapped location. Older exports carry a numeric `height`
field that is migrated to the text `dimensions` tag.
"""

from typing import Any, Iterator, Optional

from ...errors import SourceFormatError
from ...models.enums import SourceKind
from ..protocols import RawImportRecord
from .base import (
    JsonSourceAdapter,
    absolute_photo_url,
    geojson_point,
    parse_modified,
    require_external_id,
)


class RichmondAdapter(JsonSourceAdapter):
    """Adapter for the Richmond public art registry GeoJSON export."""

    source_kind = SourceKind.RICHMOND

    def _iter_items(self, payload: Any) -> Iterator[Any]:
        if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
            raise SourceFormatError("Richmond payload must be a GeoJSON FeatureCollection")
        features = payload.get("features")
        if not isinstance(features, list):
            raise SourceFormatError("FeatureCollection has no 'features' list")
        return iter(features)

    def _peek_id(self, item: Any) -> Optional[str]:
        if isinstance(item, dict) and item.get("id") is not None:
            return str(item["id"])
        return None

    def _parse_item(self, item: Any) -> RawImportRecord:
        if not isinstance(item, dict) or item.get("type") != "Feature":
            raise SourceFormatError("Record must be a GeoJSON Feature")
        properties = item.get("properties")
        if not isinstance(properties, dict):
            raise SourceFormatError("Feature has no 'properties' object", field="properties")

        external_id = require_external_id(item.get("id"), "id")
        lat, lon = geojson_point(item.get("geometry"))

        artist_names = properties.get("artistNames") or []
        if not isinstance(artist_names, list) or not all(isinstance(n, str) for n in artist_names):
            raise SourceFormatError("artistNames must be a list of strings", field="artistNames")

        photos = properties.get("photos") or []
        if not isinstance(photos, list):
            raise SourceFormatError("photos must be a list", field="photos")
        photo_urls = [u for u in (absolute_photo_url(p, self.mapping.base_url) for p in photos) if u]

        return RawImportRecord(
            source_kind=self.source_kind,
            external_id=external_id,
            fields=self._remaining_fields(properties),
            photo_urls=photo_urls,
            artist_names=list(artist_names),
            lat=lat,
            lon=lon,
            modified_at=parse_modified(properties.get("lastModified")),
        )
