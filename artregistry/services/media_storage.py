"""
Durable image store on the local filesystem.

Files are addressed by validated ImagePath values only. Writes go to a
temporary file in the target directory and are moved into place with
os.replace, so a reader never sees a partially written image.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .image_paths import ImagePath, validate_image_path

logger = logging.getLogger(__name__)


class LocalMediaStorage:
    """Stores image bytes under a root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def _resolve(self, path: Union[ImagePath, str]) -> Path:
        if not isinstance(path, ImagePath):
            path = validate_image_path(path)
        full = (self.root / path.path).resolve()
        if self.root not in full.parents:
            raise ValueError(f"Path escapes media root: {path}")
        return full

    def write(self, path: Union[ImagePath, str], data: bytes) -> None:
        """Atomically write bytes at path."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-", suffix=target.suffix)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Stored {len(data)} bytes at {path}")

    def exists(self, path: Union[ImagePath, str]) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: Union[ImagePath, str]) -> bytes:
        """
        Read stored bytes.

        Raises:
            FileNotFoundError: If no regular file is stored at path
            ValueError: If path resolves outside the media root
        """
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"No stored image at {path}")
        return target.read_bytes()

    def delete(self, path: Union[ImagePath, str]) -> bool:
        target = self._resolve(path)
        if target.is_file():
            target.unlink()
            return True
        return False


# Singleton instance
_storage_instance: Optional[LocalMediaStorage] = None


def get_media_storage() -> LocalMediaStorage:
    """Get the singleton storage rooted at Config.media_root()."""
    global _storage_instance
    if _storage_instance is None:
        from ..config import Config
        _storage_instance = LocalMediaStorage(Config.media_root())
    return _storage_instance


def reset_media_storage() -> None:
    """Reset the singleton instance (for testing)."""
    global _storage_instance
    _storage_instance = None
