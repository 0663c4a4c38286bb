"""
Stored image path parsing and construction.

Every stored image lives under one of the CacheNamespace prefixes
(artworks/, submissions/, originals/, photos/). Paths are parsed into an
ImagePath rather than checked with string prefixes, and cache paths are
only ever built from (namespace, cache_key, ext, date), never from a URL.

A path like "medium/https://photos.example.com/x.jpg" (a size prefix
joined onto a raw external URL) is rejected by the prefix check; one like
"photos/https://..." is rejected as malformed.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from ..errors import InvalidImagePrefixError, MalformedImagePathError
from ..models.enums import CacheNamespace

_CACHE_KEY_RE = re.compile(r"^[0-9a-f]{64}$")
_EXT_RE = re.compile(r"^[a-z0-9]{1,5}$")
_ALLOWED_PREFIXES = tuple(f"{ns.value}/" for ns in CacheNamespace)


@dataclass(frozen=True)
class ImagePath:
    """A validated stored-image path: namespace plus relative segments."""
    namespace: CacheNamespace
    segments: tuple[str, ...]

    @property
    def path(self) -> str:
        return "/".join((self.namespace.value,) + self.segments)

    @property
    def filename(self) -> str:
        return self.segments[-1]

    def __str__(self) -> str:
        return self.path


def validate_image_path(path: str) -> ImagePath:
    """
    Parse a stored image path.

    Raises:
        InvalidImagePrefixError: First segment is not an allowed namespace
        MalformedImagePathError: Empty, absolute, backslashes, empty or dot
            segments, control characters, or an embedded URL ("://")
    """
    if not isinstance(path, str) or not path.strip():
        raise MalformedImagePathError("Image path is required")
    if path.startswith("/"):
        raise MalformedImagePathError("Image path must be relative", details={"path": path})
    if "\\" in path:
        raise MalformedImagePathError("Image path must not contain backslashes", details={"path": path})

    head, _, rest = path.partition("/")
    try:
        namespace = CacheNamespace(head)
    except ValueError:
        raise InvalidImagePrefixError(
            f"Image path must start with one of: {', '.join(_ALLOWED_PREFIXES)}",
            details={"path": path, "allowed_prefixes": list(_ALLOWED_PREFIXES)},
        )

    if "://" in rest:
        raise MalformedImagePathError(
            "Image path must not embed a URL",
            details={"path": path},
        )
    if any(ord(c) < 32 or ord(c) == 127 for c in rest):
        raise MalformedImagePathError("Image path contains control characters", details={"path": path})

    segments = tuple(rest.split("/")) if rest else ()
    if not segments:
        raise MalformedImagePathError("Image path has no file after the prefix", details={"path": path})
    if any(s == "" for s in segments):
        raise MalformedImagePathError("Image path has empty segments", details={"path": path})
    if any(s in (".", "..") for s in segments):
        raise MalformedImagePathError("Image path must not contain '.' or '..'", details={"path": path})

    return ImagePath(namespace=namespace, segments=segments)


def build_cache_path(
    namespace: Union[CacheNamespace, str],
    cache_key: str,
    ext: str,
    fetched_at: datetime,
) -> ImagePath:
    """
    Build <namespace>/<YYYY>/<MM>/<DD>/<cache_key>.<ext>.

    The result is re-parsed with validate_image_path before it is returned.

    Raises:
        MalformedImagePathError: If any input could not form a valid path
    """
    try:
        ns = CacheNamespace(namespace)
    except ValueError:
        raise MalformedImagePathError(f"Unknown cache namespace: {namespace!r}")
    if not _CACHE_KEY_RE.match(cache_key or ""):
        raise MalformedImagePathError("Cache key must be a sha256 hex digest", details={"cache_key": cache_key})
    if not _EXT_RE.match(ext or ""):
        raise MalformedImagePathError(f"Invalid file extension: {ext!r}")

    return validate_image_path(f"{ns.value}/{fetched_at:%Y/%m/%d}/{cache_key}.{ext}")
