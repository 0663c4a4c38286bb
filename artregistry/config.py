"""
Centralized configuration for the public art registry backend.

All constants are defined here to avoid scattered magic numbers
and enable easy configuration management.
"""

import os
from pathlib import Path
from typing import List, Optional


class Config:
    """Application configuration constants."""

    # === Media Cache ===
    ALLOWED_CONTENT_TYPES: List[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "image/heic",
        "image/heif",
    ]
    MEDIA_USER_AGENT = "artregistry-photo-cache/1.0"

    # === Image Proxy ===
    IMAGE_SIZES = {
        "thumbnail": (400, 400),
        "medium": (1024, 1024),
        "large": (1200, 1200),
        "original": None,
    }
    IMAGE_QUALITY = {"thumbnail": 80, "medium": 85, "large": 90}
    ORIGINAL_CACHE_SECONDS = 86400      # 1 day
    VARIANT_CACHE_SECONDS = 31536000    # 1 year

    # === Environment ===
    @staticmethod
    def log_level() -> str:
        """Log level (DEBUG, INFO, WARNING, ERROR)."""
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def is_dev() -> bool:
        """Development mode. Default: False."""
        return os.getenv("DEV_MODE", "false").lower() == "true"

    # === Database Persistence ===
    @staticmethod
    def database_path() -> str:
        """Path to SQLite database file.
        Default: artregistry/data/registry.db (relative to package).
        Override with DATABASE_PATH env var for container deployments.
        """
        default = str(Path(__file__).parent / "data" / "registry.db")
        return os.getenv("DATABASE_PATH", default)

    @staticmethod
    def tag_schema_path() -> str:
        """Path to the versioned tag schema document."""
        default = str(Path(__file__).parent / "data" / "tag_schema.yaml")
        return os.getenv("TAG_SCHEMA_PATH", default)

    # === Media Cache ===
    @staticmethod
    def media_root() -> str:
        """Root directory of the durable image store."""
        default = str(Path(__file__).parent / "data" / "media")
        return os.getenv("MEDIA_ROOT", default)

    @staticmethod
    def media_namespace() -> str:
        """Namespace that mass-import photos are cached under. Default: photos."""
        return os.getenv("MEDIA_NAMESPACE", "photos").strip("/")

    @staticmethod
    def media_fetch_timeout() -> float:
        """Per-fetch timeout in seconds. Default: 15.0."""
        try:
            return float(os.getenv("MEDIA_FETCH_TIMEOUT", "15.0"))
        except ValueError:
            return 15.0

    @staticmethod
    def media_max_redirects() -> int:
        """Maximum redirects followed per fetch. Default: 5."""
        try:
            return int(os.getenv("MEDIA_MAX_REDIRECTS", "5"))
        except ValueError:
            return 5

    @staticmethod
    def media_max_size_mb() -> int:
        """Largest photo accepted, in MB. Default: 15."""
        try:
            return int(os.getenv("MEDIA_MAX_SIZE_MB", "15"))
        except ValueError:
            return 15

    @staticmethod
    def media_max_concurrent_fetches() -> int:
        """Outbound fetches allowed in flight per batch. Default: 4."""
        try:
            return max(1, int(os.getenv("MEDIA_MAX_CONCURRENT_FETCHES", "4")))
        except ValueError:
            return 4

    # === Import Batches ===
    @staticmethod
    def import_max_workers() -> int:
        """Records processed concurrently per batch. Default: 8."""
        try:
            return max(1, int(os.getenv("IMPORT_MAX_WORKERS", "8")))
        except ValueError:
            return 8

    @staticmethod
    def import_batch_timeout() -> Optional[float]:
        """Overall batch deadline in seconds (0 = no deadline). Default: 1800."""
        try:
            value = float(os.getenv("IMPORT_BATCH_TIMEOUT", "1800"))
        except ValueError:
            value = 1800.0
        return value if value > 0 else None
