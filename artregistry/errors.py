"""
Error taxonomy for the import pipeline and the image proxy.

Import-side errors are raised by adapters, the normalizer, the artist
resolver and the media cache; the coordinator turns them into per-record
failures in the batch summary. Only StorageUnavailableError aborts a batch.

API-side errors subclass ImageApiError and are rendered by the exception
handler registered in main.py as JSON:
    {"error": ..., "message": ..., "details": ..., "show_details": ...}
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Stable machine-readable error identifiers."""

    SOURCE_FORMAT = "SOURCE_FORMAT"
    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"
    MEDIA_FETCH = "MEDIA_FETCH"
    ARTIST_RESOLUTION_CONFLICT = "ARTIST_RESOLUTION_CONFLICT"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    INVALID_IMAGE_PREFIX = "INVALID_IMAGE_PREFIX"
    MALFORMED_IMAGE_PATH = "MALFORMED_IMAGE_PATH"
    INVALID_SIZE = "INVALID_SIZE"
    IMAGE_NOT_FOUND = "IMAGE_NOT_FOUND"


class RegistryImportError(Exception):
    """Base class for errors raised while importing source records."""

    kind: ErrorKind = ErrorKind.SOURCE_FORMAT

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    @property
    def reason(self) -> str:
        """Short reason used to group failures in batch summaries."""
        return self.kind.value


class SourceFormatError(RegistryImportError):
    """A source payload or record is missing or mis-shapes a required field."""

    kind = ErrorKind.SOURCE_FORMAT


class SchemaViolationError(RegistryImportError):
    """A normalized tag key is unknown or its value cannot be coerced."""

    kind = ErrorKind.SCHEMA_VIOLATION

    def __init__(self, message: str, key: Optional[str] = None, **details: Any):
        super().__init__(message, key=key, **details)
        self.key = key


class MediaFetchError(RegistryImportError):
    """A photo URL could not be fetched or stored."""

    kind = ErrorKind.MEDIA_FETCH

    def __init__(self, message: str, reason: str, url: Optional[str] = None, **details: Any):
        super().__init__(message, url=url, **details)
        self._reason = reason
        self.url = url

    @property
    def reason(self) -> str:
        return self._reason


class ArtistResolutionConflict(RegistryImportError):
    """Find-or-create for an artist failed even after one retry."""

    kind = ErrorKind.ARTIST_RESOLUTION_CONFLICT


class StorageUnavailableError(RegistryImportError):
    """The registry database cannot be read or written. Fatal to a batch."""

    kind = ErrorKind.STORAGE_UNAVAILABLE


class ImageApiError(Exception):
    """Base class for image proxy errors with an HTTP status."""

    kind: ErrorKind = ErrorKind.MALFORMED_IMAGE_PATH
    status_code: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        show_details: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.show_details = show_details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
            "show_details": self.show_details,
        }


class InvalidImagePrefixError(ImageApiError):
    kind = ErrorKind.INVALID_IMAGE_PREFIX
    status_code = 403


class MalformedImagePathError(ImageApiError):
    kind = ErrorKind.MALFORMED_IMAGE_PATH
    status_code = 400


class InvalidImageSizeError(ImageApiError):
    kind = ErrorKind.INVALID_SIZE
    status_code = 400


class ImageNotFoundError(ImageApiError):
    kind = ErrorKind.IMAGE_NOT_FOUND
    status_code = 404
