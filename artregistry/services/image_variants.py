"""
On-the-fly image variants for the image proxy.

Resizes stored images to the thumbnail/medium/large bounding boxes with
Pillow. Nothing is written back to storage; the proxy relies on HTTP
caching instead (variants are immutable for a year, originals for a day).
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from ..config import Config
from ..models.enums import ImageSize

# Register HEIF/HEIC support with Pillow
register_heif_opener()

logger = logging.getLogger(__name__)

EXTENSION_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "heic": "image/heic",
    "heif": "image/heif",
}


def content_type_for(filename: str) -> str:
    """Guess a content type from a stored file name."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return EXTENSION_CONTENT_TYPES.get(ext, "application/octet-stream")


def cache_headers(size: ImageSize) -> dict[str, str]:
    """HTTP cache headers for a served image."""
    if size == ImageSize.ORIGINAL:
        return {"Cache-Control": f"public, max-age={Config.ORIGINAL_CACHE_SECONDS}"}
    return {"Cache-Control": f"public, max-age={Config.VARIANT_CACHE_SECONDS}, immutable"}


def render_variant(data: bytes, size: ImageSize, filename: str) -> tuple[bytes, str]:
    """
    Produce the bytes to serve for a requested size.

    Args:
        data: Stored image bytes
        size: Requested variant
        filename: Stored file name (for the original's content type)

    Returns:
        (bytes, content_type). Originals, and images Pillow cannot decode,
        are returned unchanged.
    """
    original_type = content_type_for(filename)
    bounds: Optional[tuple[int, int]] = Config.IMAGE_SIZES.get(size.value)
    if size == ImageSize.ORIGINAL or bounds is None:
        return data, original_type

    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            img.thumbnail(bounds, Image.Resampling.LANCZOS)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            output = io.BytesIO()
            img.save(output, format="JPEG", quality=Config.IMAGE_QUALITY[size.value], optimize=True)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not resize {filename} to {size.value}, serving original: {e}")
        return data, original_type

    return output.getvalue(), "image/jpeg"
