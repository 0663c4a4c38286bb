"""
Artwork ingestion package.

Provides a modular pipeline for importing public-art records from
municipal open-data exports into the SQLite registry, with tag schema
normalization, artist deduplication and photo caching.
"""

from .protocols import SourceAdapter, RawImportRecord, NormalizedArtworkDraft, BatchSummary
from .tag_schema import TagSchema, load_default_schema
from .normalizers import FieldNormalizer
from .entities import ArtistResolver
from .pipeline import ImportCoordinator

__all__ = [
    "SourceAdapter",
    "RawImportRecord",
    "NormalizedArtworkDraft",
    "BatchSummary",
    "TagSchema",
    "load_default_schema",
    "FieldNormalizer",
    "ArtistResolver",
    "ImportCoordinator",
]
