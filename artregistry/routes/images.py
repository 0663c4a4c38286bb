"""
/api/images endpoint for the art registry.

Serves cached and original images from media storage:

    GET /api/images/{size}/{path}
        size: thumbnail | medium | large | original
        path: stored image path, e.g. photos/2025/10/15/<key>.jpg

The path is parsed with validate_image_path before storage is touched.
Errors are JSON bodies rendered by the ImageApiError handler in main.py.
The endpoint is read-only.
"""

import logging

from fastapi import APIRouter, Depends, Response

from ..errors import ImageNotFoundError, InvalidImageSizeError
from ..feature_flags import FeatureFlags, get_feature_flags
from ..models import ErrorResponse, ImageSize
from ..services.image_paths import validate_image_path
from ..services.image_variants import cache_headers, render_variant
from ..services.media_storage import LocalMediaStorage, get_media_storage

logger = logging.getLogger(__name__)
router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid size or malformed path"},
    403: {"model": ErrorResponse, "description": "Path outside the allowed prefixes"},
    404: {"model": ErrorResponse, "description": "Image not found"},
}


@router.get("/api/images/{size}/{image_path:path}", responses=_ERROR_RESPONSES)
def get_image(
    size: str,
    image_path: str,
    flags: FeatureFlags = Depends(get_feature_flags),
    storage: LocalMediaStorage = Depends(get_media_storage),
) -> Response:
    """Serve a stored image, resized on the fly for non-original sizes."""
    try:
        image_size = ImageSize(size)
    except ValueError:
        raise InvalidImageSizeError(
            f"Invalid size '{size}'",
            details={"valid_sizes": [s.value for s in ImageSize]},
        )

    path = validate_image_path(image_path)

    try:
        data = storage.read(path)
    except (FileNotFoundError, ValueError):
        raise ImageNotFoundError("Image not found", details={"path": path.path})

    if image_size != ImageSize.ORIGINAL and not flags.feature_image_variants:
        image_size = ImageSize.ORIGINAL

    body, content_type = render_variant(data, image_size, path.filename)
    logger.debug(f"Serving {path} as {image_size.value} ({len(body)} bytes)")
    return Response(content=body, media_type=content_type, headers=cache_headers(image_size))
