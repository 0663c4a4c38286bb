from .artwork_repository import ArtworkRepository
from .media_cache import MediaCacheManager
from .media_storage import LocalMediaStorage, get_media_storage
from .image_paths import ImagePath, build_cache_path, validate_image_path

__all__ = [
    "ArtworkRepository",
    "MediaCacheManager",
    "LocalMediaStorage",
    "get_media_storage",
    "ImagePath",
    "build_cache_path",
    "validate_image_path",
]
