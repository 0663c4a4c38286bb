"""
Per-source field mapping tables.

Each SourceKind carries one immutable SourceMapping describing how its
native field names land on tag schema keys. Adding a source means adding a
SourceKind member, a mapping here, and an adapter; nothing else branches on
source names.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from ..models.enums import SourceKind


def _frozen(d: dict) -> Mapping:
    return MappingProxyType(dict(d))


@dataclass(frozen=True)
class SourceMapping:
    """
    How one source's fields become a NormalizedArtworkDraft.

    renames:          source field -> tag key (target must exist in the schema)
    value_maps:       tag key -> {casefolded source value -> canonical value};
                      a None target drops the tag
    constant_tags:    tags injected into every record of the source
    numeric_fields:   source fields holding legacy measurements ("3.0 m");
                      formatted with trailing zero decimals trimmed
    title_field:      field holding the artwork title
    description_fields: (field, label) pairs joined into the description;
                      label None means the value is used as-is
    keywords_field:   comma-separated keyword field, if any
    consumed_fields:  fields the adapter or normalizer uses structurally and
                      that must not be reported as dropped
    """
    kind: SourceKind
    renames: Mapping[str, str]
    value_maps: Mapping[str, Mapping[str, Optional[str]]] = field(default_factory=lambda: _frozen({}))
    constant_tags: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    numeric_fields: frozenset[str] = frozenset()
    title_field: str = "title"
    description_fields: tuple[tuple[str, Optional[str]], ...] = (("description", None),)
    keywords_field: Optional[str] = None
    consumed_fields: frozenset[str] = frozenset()
    base_url: Optional[str] = None

    @property
    def structural_fields(self) -> frozenset[str]:
        names = {self.title_field, *(name for name, _ in self.description_fields)}
        if self.keywords_field:
            names.add(self.keywords_field)
        return frozenset(names) | self.consumed_fields


VANCOUVER = SourceMapping(
    kind=SourceKind.VANCOUVER,
    renames=_frozen({
        "primarymaterial": "material",
        "installation_date": "start_date",
        "yearofinstallation": "start_date",
        "type": "artwork_type",
        "ownership": "operator",
        "neighbourhood": "neighbourhood",
        "geo_local_area": "neighbourhood",
        "status": "status",
        "url": "website",
    }),
    value_maps=_frozen({
        "artwork_type": _frozen({
            "sculpture": "sculpture",
            "mural": "mural",
            "installation": "installation",
            "monument": "monument",
            "mosaic": "mosaic",
            "statue": "statue",
            "painting": "mural",
            "two-dimensional artwork": "mural",
            "fountain": "sculpture",
            "fountain or water feature": "sculpture",
            "relief": "sculpture",
            "totem pole": "sculpture",
            "gateway": "sculpture",
            "memorial": "monument",
            "memorial or monument": "monument",
            "site-integrated work": "installation",
            "media work": "installation",
            "welcome figure": "statue",
            "figurative": "statue",
        }),
        "status": _frozen({
            "no longer in existence": "removed",
            "deaccessioned": "deaccessioned",
        }),
    }),
    title_field="title_of_work",
    description_fields=(
        ("descriptionofwork", None),
        ("artistprojectstatement", "Artist Statement"),
        ("sitename", "Location"),
        ("siteaddress", "Address"),
        ("locationonsite", "Site Details"),
    ),
    consumed_fields=frozenset({
        "registryid", "photourl", "geom", "geo_point_2d", "artists", "record_timestamp",
    }),
)

BURNABY = SourceMapping(
    kind=SourceKind.BURNABY,
    renames=_frozen({
        "medium": "material",
        "date": "start_date",
        "owner": "operator",
        "source_url": "website",
    }),
    value_maps=_frozen({
        "artwork_type": _frozen({"unknown": None, "": None}),
    }),
    constant_tags=_frozen({"city": "burnaby"}),
    title_field="name",
    description_fields=(
        ("description", None),
        ("location", "Location"),
    ),
    keywords_field="keywords",
    consumed_fields=frozenset({
        "id", "title", "photo", "photos", "artist", "artists", "source", "last_modified",
    }),
    base_url="https://burnabyartgallery.ca",
)

RICHMOND = SourceMapping(
    kind=SourceKind.RICHMOND,
    renames=_frozen({
        "materials": "material",
        "year": "start_date",
        "height": "dimensions",
        "ownership": "operator",
        "area": "neighbourhood",
        "sourceUrl": "website",
    }),
    constant_tags=_frozen({"city": "richmond"}),
    numeric_fields=frozenset({"height"}),
    description_fields=(
        ("description", None),
        ("location", "Location"),
        ("address", "Address"),
    ),
    consumed_fields=frozenset({
        "artistNames", "artistIds", "photos", "source", "lastModified",
    }),
    base_url="https://www.richmond.ca",
)

SOURCE_MAPPINGS: Mapping[SourceKind, SourceMapping] = _frozen({
    SourceKind.VANCOUVER: VANCOUVER,
    SourceKind.BURNABY: BURNABY,
    SourceKind.RICHMOND: RICHMOND,
})


def get_mapping(kind: SourceKind) -> SourceMapping:
    return SOURCE_MAPPINGS[kind]
