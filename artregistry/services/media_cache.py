"""
Media cache for remote artwork photos.

Fetches photo URLs with httpx and stores the bytes in LocalMediaStorage,
content-addressed by the SHA256 of the source URL:

    photos/2025/10/15/<sha256(url)>.jpg

Flow for cache(url):
1. cache_key = sha256(url)
2. existing CacheRef whose file is present -> returned, no network call
3. otherwise fetch (bounded timeout, redirects and size; image content
   types only), write the file, then save the CacheRef row

Retention is unbounded. purge_missing() drops rows whose file is gone.
Repository and file work runs in the default executor so concurrent
fetches never block the event loop.
"""

import asyncio
import hashlib
import logging
import time
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..config import Config
from ..errors import ImageApiError, MediaFetchError
from ..models.enums import CacheNamespace, MediaFetchReason
from .artwork_repository import ArtworkRepository, CacheRef
from .image_paths import build_cache_path, validate_image_path
from .media_storage import LocalMediaStorage

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
}


def url_cache_key(url: str) -> str:
    """Compute the cache key for a source URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class MediaCacheManager:
    """
    Fetches and caches remote photos.

    Concurrent fetches are bounded by a semaphore. Each fetch has its own
    timeout; callers may also pass a monotonic deadline (time.monotonic())
    after which fetches fail fast with BATCH_TIMEOUT.
    """

    def __init__(
        self,
        repository: ArtworkRepository,
        storage: LocalMediaStorage,
        namespace: Optional[str] = None,
        timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        max_bytes: Optional[int] = None,
        max_concurrent: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the cache manager.

        Args:
            repository: Where CacheRef rows are stored
            storage: Where image bytes are stored
            namespace: Cache namespace. Defaults to Config.media_namespace()
            timeout: Per-fetch timeout in seconds
            max_redirects: Redirects followed per fetch
            max_bytes: Largest accepted photo
            max_concurrent: Fetches allowed in flight at once
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.repository = repository
        self.storage = storage
        self.namespace = CacheNamespace(namespace or Config.media_namespace())
        self.timeout = timeout if timeout is not None else Config.media_fetch_timeout()
        self.max_redirects = max_redirects if max_redirects is not None else Config.media_max_redirects()
        self.max_bytes = max_bytes if max_bytes is not None else Config.media_max_size_mb() * 1024 * 1024
        self.max_concurrent = max_concurrent or Config.media_max_concurrent_fetches()
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _bind_loop(self) -> None:
        """Create the client and semaphore for the running event loop."""
        loop = asyncio.get_running_loop()
        if self._loop is loop and self._client is not None:
            return
        self._loop = loop
        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=self.max_redirects,
            timeout=httpx.Timeout(self.timeout),
            headers={"User-Agent": Config.MEDIA_USER_AGENT},
            transport=self._transport,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self._semaphore = None
        self._loop = None

    async def __aenter__(self) -> "MediaCacheManager":
        self._bind_loop()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def lookup(self, url: str) -> Optional[CacheRef]:
        """Return the CacheRef for url if its file is present."""
        ref = self.repository.get_cache_ref(url_cache_key(url))
        if ref is None:
            return None
        try:
            if self.storage.exists(validate_image_path(ref.stored_path)):
                return ref
        except ImageApiError:
            logger.warning(f"Ignoring cache ref with invalid path: {ref.stored_path}")
            return None
        logger.debug(f"Cached file missing for {ref.cache_key[:12]}..., refetching")
        return None

    async def cache(self, url: str, deadline: Optional[float] = None) -> CacheRef:
        """
        Return a CacheRef for url, fetching it if needed.

        Args:
            url: Absolute http(s) source URL
            deadline: Optional time.monotonic() value after which no fetch starts

        Raises:
            MediaFetchError: If the photo could not be fetched or stored
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise MediaFetchError(f"Not an absolute http(s) URL: {url!r}", MediaFetchReason.INVALID_URL.value, url=url)

        loop = asyncio.get_running_loop()
        cached = await loop.run_in_executor(None, self.lookup, url)
        if cached is not None:
            logger.debug(f"Media cache HIT: {cached.cache_key[:12]}...")
            return cached

        self._bind_loop()
        async with self._semaphore:
            timeout = self.timeout
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise MediaFetchError(
                        "Batch deadline passed before fetch started",
                        MediaFetchReason.BATCH_TIMEOUT.value,
                        url=url,
                    )
                timeout = min(timeout, remaining)

            try:
                data, content_type = await asyncio.wait_for(self._fetch(url), timeout)
            except asyncio.TimeoutError:
                reason = MediaFetchReason.TIMEOUT
                if deadline is not None and time.monotonic() >= deadline:
                    reason = MediaFetchReason.BATCH_TIMEOUT
                raise MediaFetchError(f"Fetch timed out after {timeout:.1f}s", reason.value, url=url)

        return await loop.run_in_executor(None, self._store, url, data, content_type)

    async def _fetch(self, url: str) -> tuple[bytes, str]:
        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise MediaFetchError(
                        f"HTTP {response.status_code}",
                        MediaFetchReason.HTTP_STATUS.value,
                        url=url,
                        status_code=response.status_code,
                    )

                content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
                if content_type not in Config.ALLOWED_CONTENT_TYPES:
                    raise MediaFetchError(
                        f"Unsupported content type: {content_type or 'none'}",
                        MediaFetchReason.UNSUPPORTED_CONTENT_TYPE.value,
                        url=url,
                        content_type=content_type,
                    )

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise MediaFetchError(
                        f"Declared size {declared} exceeds {self.max_bytes} bytes",
                        MediaFetchReason.TOO_LARGE.value,
                        url=url,
                    )

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > self.max_bytes:
                        raise MediaFetchError(
                            f"Body exceeds {self.max_bytes} bytes",
                            MediaFetchReason.TOO_LARGE.value,
                            url=url,
                        )
                    chunks.append(chunk)
                return b"".join(chunks), content_type

        except httpx.TooManyRedirects as e:
            raise MediaFetchError(str(e), MediaFetchReason.TOO_MANY_REDIRECTS.value, url=url)
        except httpx.TimeoutException as e:
            raise MediaFetchError(f"Timed out: {e}", MediaFetchReason.TIMEOUT.value, url=url)
        except httpx.HTTPError as e:
            raise MediaFetchError(f"Network error: {e}", MediaFetchReason.NETWORK.value, url=url)

    def _store(self, url: str, data: bytes, content_type: str) -> CacheRef:
        cache_key = url_cache_key(url)
        fetched_at = datetime.now(timezone.utc)
        try:
            path = build_cache_path(
                self.namespace, cache_key, CONTENT_TYPE_EXTENSIONS[content_type], fetched_at
            )
        except ImageApiError as e:
            raise MediaFetchError(e.message, MediaFetchReason.INVALID_PATH.value, url=url)

        # Bytes first, so a saved row never points at a missing file
        try:
            self.storage.write(path, data)
        except OSError as e:
            raise MediaFetchError(f"Could not write {path}: {e}", MediaFetchReason.STORAGE.value, url=url)

        ref = CacheRef(
            cache_key=cache_key,
            stored_path=path.path,
            source_url=url,
            fetched_at=fetched_at,
            content_type=content_type,
            size_bytes=len(data),
        )
        self.repository.save_cache_ref(ref)
        logger.info(f"Media cache STORE: {url} -> {path} ({len(data)} bytes)")
        return ref

    def purge_missing(self) -> int:
        """
        Delete cache refs whose stored file no longer exists.

        Artwork photo refs pointing at them are removed by the database
        cascade. Returns the number of refs removed.
        """
        removed = 0
        for ref in list(self.repository.iter_cache_refs()):
            try:
                present = self.storage.exists(validate_image_path(ref.stored_path))
            except ImageApiError:
                present = False
            if not present:
                self.repository.delete_cache_ref(ref.cache_key)
                removed += 1
        if removed:
            logger.info(f"Media cache purge: removed {removed} refs with missing files")
        return removed
