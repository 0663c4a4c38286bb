"""
Source adapters for artwork ingestion.

Each adapter reads one open-data export format and produces RawImportRecord
objects. Use get_adapter() to pick the adapter for a SourceKind.
"""

from ...models.enums import SourceKind
from .burnaby_adapter import BurnabyAdapter
from .richmond_adapter import RichmondAdapter
from .vancouver_adapter import VancouverAdapter

ADAPTERS = {
    SourceKind.VANCOUVER: VancouverAdapter,
    SourceKind.BURNABY: BurnabyAdapter,
    SourceKind.RICHMOND: RichmondAdapter,
}


def get_adapter(kind: SourceKind, **kwargs):
    """Instantiate the adapter registered for a source."""
    return ADAPTERS[SourceKind(kind)](**kwargs)


__all__ = [
    "ADAPTERS",
    "BurnabyAdapter",
    "RichmondAdapter",
    "VancouverAdapter",
    "get_adapter",
]
