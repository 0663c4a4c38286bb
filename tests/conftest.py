"""
Pytest configuration for the art registry tests.
"""

import io

import pytest
from PIL import Image

from artregistry.db import ensure_schema
from artregistry.ingestion.tag_schema import load_default_schema
from artregistry.services.artwork_repository import ArtworkRepository
from artregistry.services.media_storage import LocalMediaStorage


@pytest.fixture
def db_path(tmp_path):
    """Migrated SQLite database in a temp directory."""
    path = tmp_path / "registry.db"
    ensure_schema(str(path))
    return str(path)


@pytest.fixture
def repo(db_path):
    repository = ArtworkRepository(db_path)
    yield repository
    repository.close()


@pytest.fixture(scope="session")
def tag_schema():
    return load_default_schema()


@pytest.fixture
def storage(tmp_path):
    return LocalMediaStorage(tmp_path / "media")


@pytest.fixture(scope="session")
def png_bytes():
    """An 800x600 PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (800, 600), color=(200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()
