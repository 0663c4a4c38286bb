"""
City of Vancouver public art adapter.

Reads the open data portal's public-art export: either the bare record
list from the JSON download, or an API response with a `results` list.

Record shape (relevant fields):
    registryid          stable id (required)
    title_of_work       title
    primarymaterial     -> material
    yearofinstallation  -> start_date
    photourl            {"url": ..., "filename": ..., ...}
    geo_point_2d        {"lat": ..., "lon": ...}
    artists             artist names, or artist ids resolved through an
                        optional artist directory export
    record_timestamp    last modification on the portal
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Union

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

logger = logging.getLogger(__name__)


class VancouverAdapter(JsonSourceAdapter):
    """
    Adapter for the Vancouver public-art dataset.

    The dataset lists artists by registry id. Pass `artist_directory`
    (id -> display name, from the public-art-artists dataset) to turn ids
    into names; without it, numeric ids are ignored.
    """

    source_kind = SourceKind.VANCOUVER

    def __init__(self, artist_directory: Optional[Mapping[str, str]] = None):
        super().__init__()
        self.artist_directory = {str(k): v for k, v in (artist_directory or {}).items()}

    @classmethod
    def from_artist_export(cls, path: Union[str, Path]) -> "VancouverAdapter":
        """Build an adapter whose artist directory comes from the artists dataset export."""
        with open(path, encoding="utf-8") as f:
            rows = json.load(f)
        if isinstance(rows, dict):
            rows = rows.get("results", [])

        directory: dict[str, str] = {}
        for row in rows:
            if not isinstance(row, dict):
                continue
            artist_id = row.get("artistid") or row.get("artistId")
            name = row.get("name") or " ".join(
                part for part in (row.get("firstname"), row.get("lastname")) if part
            )
            if artist_id is not None and name:
                directory[str(artist_id)] = " ".join(str(name).split())
        logger.info(f"Loaded {len(directory)} Vancouver artists from {path}")
        return cls(artist_directory=directory)

    def _iter_items(self, payload: Any) -> Iterator[Any]:
        if isinstance(payload, dict) and isinstance(payload.get("results"), list):
            payload = payload["results"]
        if not isinstance(payload, list):
            raise SourceFormatError(
                "Vancouver payload must be a list of records or an object with 'results'"
            )
        return iter(payload)

    def _peek_id(self, item: Any) -> Optional[str]:
        if isinstance(item, dict) and item.get("registryid") is not None:
            return str(item["registryid"])
        return None

    def _parse_item(self, item: Any) -> RawImportRecord:
        if not isinstance(item, dict):
            raise SourceFormatError("Record must be an object")

        external_id = require_external_id(item.get("registryid"), "registryid")
        lat, lon = self._coordinates(item)

        photo_urls = []
        photo = item.get("photourl")
        if isinstance(photo, dict):
            photo = photo.get("url")
        url = absolute_photo_url(photo, None)
        if url:
            photo_urls.append(url)

        return RawImportRecord(
            source_kind=self.source_kind,
            external_id=external_id,
            fields=self._remaining_fields(item),
            photo_urls=photo_urls,
            artist_names=self._artist_names(external_id, item.get("artists")),
            lat=lat,
            lon=lon,
            modified_at=parse_modified(item.get("record_timestamp")),
        )

    def _coordinates(self, item: dict) -> tuple[Optional[float], Optional[float]]:
        point = item.get("geo_point_2d")
        if point is not None:
            if not isinstance(point, dict):
                raise SourceFormatError("geo_point_2d must be an object", field="geo_point_2d")
            return (
                parse_coordinate(point.get("lat"), "lat", 90),
                parse_coordinate(point.get("lon"), "lon", 180),
            )
        geom = item.get("geom")
        if isinstance(geom, dict):
            return geojson_point(geom.get("geometry", geom))
        return None, None

    def _artist_names(self, external_id: str, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(";")
        if not isinstance(value, list):
            raise SourceFormatError("artists must be a list", field="artists")

        names = []
        for entry in value:
            key = str(entry).strip()
            if not key:
                continue
            if key.isdigit():
                name = self.artist_directory.get(key)
                if name is None:
                    logger.warning(
                        f"[vancouver] {external_id}: artist id {key} not in artist directory"
                    )
                    continue
                names.append(name)
            else:
                names.append(key)
        return names
