"""
Tests for the photo media cache.

Network access is replaced with httpx.MockTransport.
"""

import asyncio
import time

import httpx
import pytest

from artregistry.errors import MediaFetchError
from artregistry.services.media_cache import MediaCacheManager, url_cache_key
from artregistry.services.media_storage import LocalMediaStorage

PHOTO_URL = "https://photos.example.com/art/101.png"


class RecordingTransport:
    """MockTransport handler that counts requests per URL."""

    def __init__(self, responder):
        self.responder = responder
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request):
        self.requests.append(str(request.url))
        return self.responder(request)


def _manager(repo, storage, handler, **kwargs):
    kwargs.setdefault("timeout", 2.0)
    return MediaCacheManager(repo, storage, transport=httpx.MockTransport(handler), **kwargs)


@pytest.fixture
def png_handler(png_bytes):
    return RecordingTransport(
        lambda request: httpx.Response(200, headers={"content-type": "image/png"}, content=png_bytes)
    )


class TestCacheKey:

    def test_sha256_of_url(self):
        key = url_cache_key(PHOTO_URL)
        assert len(key) == 64
        assert key == url_cache_key(PHOTO_URL)
        assert key != url_cache_key(PHOTO_URL + "?v=2")


class TestMediaCacheStore:

    @pytest.mark.asyncio
    async def test_fetches_and_stores(self, repo, storage, png_handler, png_bytes):
        async with _manager(repo, storage, png_handler) as manager:
            ref = await manager.cache(PHOTO_URL)

        assert ref.cache_key == url_cache_key(PHOTO_URL)
        assert ref.stored_path.startswith("photos/")
        assert ref.stored_path.endswith(f"{ref.cache_key}.png")
        assert "://" not in ref.stored_path
        assert ref.source_url == PHOTO_URL
        assert ref.content_type == "image/png"
        assert ref.size_bytes == len(png_bytes)
        assert storage.read(ref.stored_path) == png_bytes
        assert repo.get_cache_ref(ref.cache_key).stored_path == ref.stored_path

    @pytest.mark.asyncio
    async def test_second_call_is_cache_hit(self, repo, storage, png_handler):
        async with _manager(repo, storage, png_handler) as manager:
            first = await manager.cache(PHOTO_URL)
            second = await manager.cache(PHOTO_URL)

        assert first.stored_path == second.stored_path
        assert png_handler.requests == [PHOTO_URL]

    @pytest.mark.asyncio
    async def test_missing_file_is_refetched(self, repo, storage, png_handler):
        async with _manager(repo, storage, png_handler) as manager:
            ref = await manager.cache(PHOTO_URL)
            storage.delete(ref.stored_path)
            assert manager.lookup(PHOTO_URL) is None
            await manager.cache(PHOTO_URL)

        assert len(png_handler.requests) == 2

    @pytest.mark.asyncio
    async def test_namespace_override(self, repo, storage, png_handler):
        async with _manager(repo, storage, png_handler, namespace="artworks") as manager:
            ref = await manager.cache(PHOTO_URL)
        assert ref.stored_path.startswith("artworks/")

    def test_unknown_namespace_rejected(self, repo, storage, png_handler):
        with pytest.raises(ValueError):
            _manager(repo, storage, png_handler, namespace="medium")


class TestMediaCacheFailures:

    async def _reason(self, repo, storage, handler, url=PHOTO_URL, **kwargs):
        deadline = kwargs.pop("deadline", None)
        async with _manager(repo, storage, handler, **kwargs) as manager:
            with pytest.raises(MediaFetchError) as exc_info:
                await manager.cache(url, deadline=deadline)
        assert repo.get_cache_ref(url_cache_key(url)) is None
        return exc_info.value.reason

    @pytest.mark.asyncio
    async def test_invalid_url(self, repo, storage, png_handler):
        assert await self._reason(repo, storage, png_handler, url="ftp://photos.example.com/x.png") == "INVALID_URL"
        assert png_handler.requests == []

    @pytest.mark.asyncio
    async def test_http_error_status(self, repo, storage):
        handler = RecordingTransport(lambda request: httpx.Response(404))
        assert await self._reason(repo, storage, handler) == "HTTP_STATUS"

    @pytest.mark.asyncio
    async def test_unsupported_content_type(self, repo, storage):
        handler = RecordingTransport(
            lambda request: httpx.Response(200, headers={"content-type": "text/html"}, content=b"<html>")
        )
        assert await self._reason(repo, storage, handler) == "UNSUPPORTED_CONTENT_TYPE"

    @pytest.mark.asyncio
    async def test_too_large(self, repo, storage, png_handler):
        assert await self._reason(repo, storage, png_handler, max_bytes=100) == "TOO_LARGE"

    @pytest.mark.asyncio
    async def test_too_many_redirects(self, repo, storage):
        handler = RecordingTransport(
            lambda request: httpx.Response(302, headers={"location": str(request.url) + "x"})
        )
        assert await self._reason(repo, storage, handler, max_redirects=2) == "TOO_MANY_REDIRECTS"

    @pytest.mark.asyncio
    async def test_network_error(self, repo, storage):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await self._reason(repo, storage, refuse) == "NETWORK"

    @pytest.mark.asyncio
    async def test_timeout(self, repo, storage, png_bytes):
        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200, headers={"content-type": "image/png"}, content=png_bytes)

        assert await self._reason(repo, storage, slow, timeout=0.05) == "TIMEOUT"

    @pytest.mark.asyncio
    async def test_deadline_passed(self, repo, storage, png_handler):
        reason = await self._reason(repo, storage, png_handler, deadline=time.monotonic() - 1)
        assert reason == "BATCH_TIMEOUT"
        assert png_handler.requests == []

    @pytest.mark.asyncio
    async def test_storage_failure(self, repo, tmp_path, png_handler):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        assert await self._reason(repo, LocalMediaStorage(blocker), png_handler) == "STORAGE"


class TestPurgeMissing:

    @pytest.mark.asyncio
    async def test_removes_refs_without_files(self, repo, storage, png_handler):
        async with _manager(repo, storage, png_handler) as manager:
            kept = await manager.cache(PHOTO_URL)
            gone = await manager.cache(PHOTO_URL + "?v=2")
        storage.delete(gone.stored_path)

        assert manager.purge_missing() == 1
        assert repo.get_cache_ref(gone.cache_key) is None
        assert repo.get_cache_ref(kept.cache_key) is not None
