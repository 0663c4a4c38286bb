"""
Burnaby Art Gallery collection adapter.

Accepts the gallery scrape as a GeoJSON FeatureCollection or as a plain
list of flat records. Photo references on the gallery site are relative
(/img/123.jpg) and are made absolute against https://burnabyartgallery.ca.
Artist credits use catalogue order ("Fafard, Joe and Smith, Ann") and are
split and reordered to display order.
"""

import re
from typing import Any, Iterator, Optional

from ...errors import SourceFormatError
from ...models.enums import SourceKind
from ..protocols import RawImportRecord
from .base import (
    JsonSourceAdapter,
    absolute_photo_url,
    geojson_point,
    parse_coordinate,
    parse_modified,
    require_external_id,
)

_ARTIST_SPLIT_RE = re.compile(r"\s+(?:and|&)\s+", re.IGNORECASE)


def split_artist_credit(credit: Optional[str]) -> list[str]:
    """
    Split a catalogue artist credit into display names.

    "Fafard, Joe"                  -> ["Joe Fafard"]
    "Doe, Jane and Roe, Richard"   -> ["Jane Doe", "Richard Roe"]
    "Studio X & Collective Y"      -> ["Studio X", "Collective Y"]
    """
    if not credit:
        return []
    names = []
    for part in _ARTIST_SPLIT_RE.split(credit.strip()):
        part = part.strip()
        if not part:
            continue
        if "," in part:
            pieces = [p.strip() for p in part.split(",") if p.strip()]
            if len(pieces) >= 2:
                part = f"{', '.join(pieces[1:])} {pieces[0]}"
        names.append(" ".join(part.split()))
    return names


class BurnabyAdapter(JsonSourceAdapter):
    """Adapter for the Burnaby Art Gallery public collection."""

    source_kind = SourceKind.BURNABY

    def _iter_items(self, payload: Any) -> Iterator[Any]:
        if isinstance(payload, dict) and payload.get("type") == "FeatureCollection":
            features = payload.get("features")
            if not isinstance(features, list):
                raise SourceFormatError("FeatureCollection has no 'features' list")
            return iter(features)
        if isinstance(payload, list):
            return iter(payload)
        raise SourceFormatError("Burnaby payload must be a FeatureCollection or a list of records")

    def _peek_id(self, item: Any) -> Optional[str]:
        if not isinstance(item, dict):
            return None
        value = item.get("id")
        if value is None and isinstance(item.get("properties"), dict):
            value = item["properties"].get("id")
        return str(value) if value is not None else None

    def _parse_item(self, item: Any) -> RawImportRecord:
        if not isinstance(item, dict):
            raise SourceFormatError("Record must be an object")

        if item.get("type") == "Feature":
            properties = item.get("properties")
            if not isinstance(properties, dict):
                raise SourceFormatError("Feature has no 'properties' object", field="properties")
            external_id = require_external_id(item.get("id", properties.get("id")), "id")
            lat, lon = geojson_point(item.get("geometry"))
        else:
            properties = item
            external_id = require_external_id(item.get("id"), "id")
            lat = lon = None
            if item.get("lat") is not None and item.get("lon") is not None:
                lat = parse_coordinate(item["lat"], "lat", 90)
                lon = parse_coordinate(item["lon"], "lon", 180)

        fields = self._remaining_fields(properties)
        fields.pop("lat", None)
        fields.pop("lon", None)
        fields["name"] = properties.get("name") or properties.get("title")

        return RawImportRecord(
            source_kind=self.source_kind,
            external_id=external_id,
            fields=fields,
            photo_urls=self._photo_urls(properties),
            artist_names=self._artist_names(properties),
            lat=lat,
            lon=lon,
            modified_at=parse_modified(properties.get("last_modified")),
        )

    def _photo_urls(self, properties: dict) -> list[str]:
        photos = properties.get("photos")
        if photos is None:
            photos = [properties["photo"]] if properties.get("photo") else []
        if isinstance(photos, str):
            photos = [photos]
        if not isinstance(photos, list):
            raise SourceFormatError("photos must be a list", field="photos")
        urls = (absolute_photo_url(p, self.mapping.base_url) for p in photos)
        return [u for u in urls if u]

    def _artist_names(self, properties: dict) -> list[str]:
        credits = properties.get("artists")
        if credits is None:
            credits = [properties.get("artist")]
        if isinstance(credits, str):
            credits = [credits]
        if not isinstance(credits, list):
            raise SourceFormatError("artists must be a list", field="artists")
        names = []
        for credit in credits:
            if credit is not None and not isinstance(credit, str):
                raise SourceFormatError("artist credits must be strings", field="artists")
            names.extend(split_artist_credit(credit))
        return names
