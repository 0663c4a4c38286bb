"""
Enums for type-safe string constants in the art registry.
"""

from enum import Enum


class SourceKind(str, Enum):
    """External open-data source an artwork record came from."""
    VANCOUVER = "vancouver"
    BURNABY = "burnaby"
    RICHMOND = "richmond"


class RecordState(str, Enum):
    """Per-record progress through an import batch."""
    PENDING = "pending"
    NORMALIZED = "normalized"
    ARTISTS_RESOLVED = "artists_resolved"
    MEDIA_CACHED = "media_cached"
    PERSISTED = "persisted"
    FAILED = "failed"


class ImportStage(str, Enum):
    """Stage a record failure is attributed to."""
    NORMALIZE = "normalize"
    RESOLVE_ARTISTS = "resolve_artists"
    PERSIST = "persist"


class PersistOutcome(str, Enum):
    """What persisting a record did to the registry."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class MediaFetchReason(str, Enum):
    """Why a photo could not be cached."""
    INVALID_URL = "INVALID_URL"
    TIMEOUT = "TIMEOUT"
    BATCH_TIMEOUT = "BATCH_TIMEOUT"
    HTTP_STATUS = "HTTP_STATUS"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    TOO_LARGE = "TOO_LARGE"
    UNSUPPORTED_CONTENT_TYPE = "UNSUPPORTED_CONTENT_TYPE"
    NETWORK = "NETWORK"
    INVALID_PATH = "INVALID_PATH"
    STORAGE = "STORAGE"


class ImageSize(str, Enum):
    """Variants the image proxy can serve."""
    THUMBNAIL = "thumbnail"
    MEDIUM = "medium"
    LARGE = "large"
    ORIGINAL = "original"


class CacheNamespace(str, Enum):
    """Allowed first path segment of every stored image."""
    ARTWORKS = "artworks"
    SUBMISSIONS = "submissions"
    ORIGINALS = "originals"
    PHOTOS = "photos"


class ImportRunStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"
