"""
Tests for stored image path parsing and cache path construction.
"""

from datetime import datetime, timezone

import pytest

from artregistry.errors import InvalidImagePrefixError, MalformedImagePathError
from artregistry.models.enums import CacheNamespace
from artregistry.services.image_paths import build_cache_path, validate_image_path

KEY = "ab" * 32


class TestValidateImagePath:

    @pytest.mark.parametrize("path", [
        "photos/2025/10/15/cached-abc123.jpg",
        "artworks/a1/b2.png",
        "submissions/x.webp",
        "originals/2024/01/01/o.heic",
    ])
    def test_accepts_allowed_prefixes(self, path):
        parsed = validate_image_path(path)
        assert parsed.path == path
        assert str(parsed) == path

    def test_parses_namespace_and_filename(self):
        parsed = validate_image_path("photos/2025/10/15/cached-abc123.jpg")
        assert parsed.namespace == CacheNamespace.PHOTOS
        assert parsed.segments == ("2025", "10", "15", "cached-abc123.jpg")
        assert parsed.filename == "cached-abc123.jpg"

    @pytest.mark.parametrize("path", [
        "medium/https://photos.example.com/x.jpg",
        "https://photos.example.com/x.jpg",
        "images/x.jpg",
        "Photos/x.jpg",
        "photosx/y.jpg",
    ])
    def test_rejects_unknown_prefix(self, path):
        with pytest.raises(InvalidImagePrefixError) as exc_info:
            validate_image_path(path)
        assert exc_info.value.status_code == 403
        assert exc_info.value.kind.value == "INVALID_IMAGE_PREFIX"

    @pytest.mark.parametrize("path", [
        "",
        "   ",
        "/photos/x.jpg",
        "photos/../secrets.txt",
        "photos/./x.jpg",
        "photos//x.jpg",
        "photos/",
        "photos",
        "photos\\x.jpg",
        "photos/https://photos.example.com/x.jpg",
        "photos/a\x00b.jpg",
    ])
    def test_rejects_malformed(self, path):
        with pytest.raises(MalformedImagePathError) as exc_info:
            validate_image_path(path)
        assert exc_info.value.status_code == 400

    def test_error_body_shape(self):
        with pytest.raises(InvalidImagePrefixError) as exc_info:
            validate_image_path("medium/https://photos.example.com/x.jpg")
        body = exc_info.value.to_dict()
        assert set(body) == {"error", "message", "details", "show_details"}
        assert body["error"] == "INVALID_IMAGE_PREFIX"
        assert "photos/" in body["details"]["allowed_prefixes"]


class TestBuildCachePath:

    def test_builds_dated_path(self):
        fetched = datetime(2025, 10, 15, 8, 30, tzinfo=timezone.utc)
        path = build_cache_path(CacheNamespace.PHOTOS, KEY, "jpg", fetched)
        assert path.path == f"photos/2025/10/15/{KEY}.jpg"

    def test_accepts_namespace_string(self):
        fetched = datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert build_cache_path("artworks", KEY, "png", fetched).path.startswith("artworks/2024/01/02/")

    @pytest.mark.parametrize("namespace,key,ext", [
        ("medium", KEY, "jpg"),
        ("photos", "https://photos.example.com/x.jpg", "jpg"),
        ("photos", "abc123", "jpg"),
        ("photos", KEY, "j/pg"),
        ("photos", KEY, ""),
    ])
    def test_rejects_bad_inputs(self, namespace, key, ext):
        with pytest.raises(MalformedImagePathError):
            build_cache_path(namespace, key, ext, datetime.now(timezone.utc))

    def test_built_paths_never_contain_scheme(self):
        fetched = datetime.now(timezone.utc)
        for namespace in CacheNamespace:
            path = build_cache_path(namespace, KEY, "webp", fetched).path
            assert "://" not in path
            assert path.startswith(f"{namespace.value}/")
