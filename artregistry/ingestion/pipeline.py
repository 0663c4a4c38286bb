"""
Artwork import pipeline.

Orchestrates the flow per source record:
    adapter -> normalizer -> artist resolver -> media cache -> repository

Each record moves PENDING -> NORMALIZED -> ARTISTS_RESOLVED -> MEDIA_CACHED
-> PERSISTED, or stops at FAILED(stage, reason). Records run concurrently
under a worker limit and a failing record never stops the others. Only
storage unavailability aborts a batch.
"""

import asyncio
import functools
import hashlib
import json
import logging
import sqlite3
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..config import Config
from ..errors import RegistryImportError, MediaFetchError, StorageUnavailableError
from ..feature_flags import get_feature_flags
from ..models.enums import ImportRunStatus, ImportStage, PersistOutcome, RecordState
from ..services.artwork_repository import ArtworkRepository, ArtworkWrite
from ..services.media_cache import MediaCacheManager, url_cache_key
from ..services.media_storage import get_media_storage
from .entities import ArtistResolver
from .normalizers import FieldNormalizer
from .protocols import (
    BatchSummary,
    MediaFailure,
    NormalizedArtworkDraft,
    RawImportRecord,
    RecordFailure,
    SourceAdapter,
)
from .tag_schema import TagSchema, load_default_schema

logger = logging.getLogger(__name__)


def compute_fingerprint(
    draft: NormalizedArtworkDraft,
    artist_ids: list[Optional[str]],
    photo_keys: list[str],
) -> str:
    """Hash of everything persist_artwork would write for a record."""
    payload = {
        "title": draft.title,
        "description": draft.description,
        "tags": draft.tags,
        "keywords": draft.keywords,
        "lat": draft.lat,
        "lon": draft.lon,
        "artist_ids": artist_ids,
        "photo_keys": photo_keys,
    }
    encoded = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def payload_hash(payload: Any) -> str:
    """Stable hash of a source payload for the import run log."""
    encoded = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def in_date_range(
    record: RawImportRecord,
    modified_since: Optional[date],
    modified_until: Optional[date],
) -> bool:
    """Inclusive range check on modified_at. Undated records always pass."""
    if record.modified_at is None:
        return True
    if modified_since and record.modified_at < modified_since:
        return False
    if modified_until and record.modified_at > modified_until:
        return False
    return True


@dataclass
class RecordResult:
    """Where one record ended up."""
    external_id: str
    state: RecordState = RecordState.PENDING
    outcome: Optional[PersistOutcome] = None
    failure: Optional[RecordFailure] = None
    media_cached: int = 0
    media_failures: list[MediaFailure] = field(default_factory=list)


class _RecordFailed(Exception):
    def __init__(self, stage: ImportStage, reason: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.reason = reason
        self.message = message

    @classmethod
    def from_error(cls, stage: ImportStage, error: RegistryImportError) -> "_RecordFailed":
        return cls(stage, error.reason, error.message)


class ImportCoordinator:
    """
    Runs import batches.

    Coordinates:
    1. Parsing the source payload with its adapter
    2. Normalizing records against the tag schema
    3. Resolving artists (atomic find-or-create)
    4. Caching photos
    5. Persisting each record atomically (no-op if unchanged)
    """

    def __init__(
        self,
        repository: ArtworkRepository,
        tag_schema: Optional[TagSchema] = None,
        media_cache: Optional[MediaCacheManager] = None,
        max_workers: Optional[int] = None,
        batch_timeout: Optional[float] = None,
        media_caching: Optional[bool] = None,
    ):
        """
        Initialize coordinator.

        Args:
            repository: Artwork repository
            tag_schema: Tag schema (loads Config.tag_schema_path() if None)
            media_cache: Media cache (creates one on the default storage if None)
            max_workers: Records processed concurrently
            batch_timeout: Seconds after which remaining photo fetches fail fast
            media_caching: Fetch remote photos (defaults to the feature flag)
        """
        self.repository = repository
        self.tag_schema = tag_schema or load_default_schema()
        self.normalizer = FieldNormalizer(self.tag_schema)
        self.resolver = ArtistResolver(repository)
        self.media_cache = media_cache or MediaCacheManager(repository, get_media_storage())
        self.max_workers = max_workers or Config.import_max_workers()
        self.batch_timeout = batch_timeout if batch_timeout is not None else Config.import_batch_timeout()
        self.media_caching = (
            media_caching if media_caching is not None else get_feature_flags().feature_media_caching
        )

    async def run(
        self,
        adapter: SourceAdapter,
        payload: Any,
        dry_run: bool = False,
        modified_since: Optional[date] = None,
        modified_until: Optional[date] = None,
    ) -> BatchSummary:
        """
        Import one source payload.

        Args:
            adapter: Adapter for the payload's source
            payload: Decoded source export
            dry_run: Normalize and look up artists only; write nothing
            modified_since: Skip records modified before this date
            modified_until: Skip records modified after this date

        Returns:
            BatchSummary with per-stage failures

        Raises:
            SourceFormatError: If the payload as a whole is malformed
            StorageUnavailableError: If the registry database cannot be used
        """
        started = time.monotonic()
        kind = adapter.source_kind
        summary = BatchSummary(source_kind=kind, dry_run=dry_run)

        output = adapter.parse(payload)
        summary.records_read = len(output.records) + len(output.rejected)
        summary.skipped = list(output.rejected)

        records = [r for r in output.records if in_date_range(r, modified_since, modified_until)]
        summary.filtered = len(output.records) - len(records)

        run_id = None
        if not dry_run:
            run_id = await self._storage_call(self.repository.start_import_run, kind, payload_hash(payload))

        deadline = started + self.batch_timeout if self.batch_timeout else None
        artists_before = self.resolver.created_count
        workers = asyncio.Semaphore(self.max_workers)

        async def worker(record: RawImportRecord) -> RecordResult:
            async with workers:
                return await self._process_record(record, dry_run, deadline)

        tasks = [asyncio.create_task(worker(r)) for r in records]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if run_id is not None:
                self._mark_run_failed(run_id, summary, e)
            raise
        finally:
            await self.media_cache.aclose()

        for result in results:
            if result.failure is not None:
                summary.failures.append(result.failure)
            elif result.outcome == PersistOutcome.CREATED:
                summary.created += 1
            elif result.outcome == PersistOutcome.UPDATED:
                summary.updated += 1
            elif result.outcome == PersistOutcome.UNCHANGED:
                summary.unchanged += 1
            summary.media_cached += result.media_cached
            summary.media_failures.extend(result.media_failures)

        summary.artists_created = self.resolver.created_count - artists_before
        summary.duration_seconds = round(time.monotonic() - started, 3)

        if run_id is not None:
            await self._storage_call(
                self.repository.finish_import_run, run_id, ImportRunStatus.COMPLETE, summary.to_dict()
            )

        logger.info(
            f"Import {kind.value}{' (dry run)' if dry_run else ''}: "
            f"{summary.created} created, {summary.updated} updated, {summary.unchanged} unchanged, "
            f"{summary.failed} failed, {len(summary.skipped)} skipped, {summary.filtered} filtered, "
            f"{len(summary.media_failures)} photo failures in {summary.duration_seconds}s"
        )
        return summary

    def run_sync(self, adapter: SourceAdapter, payload: Any, **kwargs) -> BatchSummary:
        """Blocking wrapper around run() for the CLI."""
        return asyncio.run(self.run(adapter, payload, **kwargs))

    async def _process_record(
        self,
        record: RawImportRecord,
        dry_run: bool,
        deadline: Optional[float],
    ) -> RecordResult:
        result = RecordResult(external_id=record.external_id)
        try:
            await self._advance(record, result, dry_run, deadline)
        except _RecordFailed as failed:
            result.state = RecordState.FAILED
            result.failure = RecordFailure(
                external_id=record.external_id,
                stage=failed.stage,
                reason=failed.reason,
                message=failed.message,
            )
            logger.warning(
                f"[{record.source_kind.value}] {record.external_id} failed at "
                f"{failed.stage.value}: {failed.message}"
            )
        return result

    async def _advance(
        self,
        record: RawImportRecord,
        result: RecordResult,
        dry_run: bool,
        deadline: Optional[float],
    ) -> None:
        try:
            draft = self.normalizer.normalize(record)
        except RegistryImportError as e:
            raise _RecordFailed.from_error(ImportStage.NORMALIZE, e)
        result.state = RecordState.NORMALIZED

        try:
            if dry_run:
                artist_ids = await self._storage_call(self.resolver.preview, draft.artist_names)
            else:
                artist_ids = await self._storage_call(self.resolver.resolve, draft.artist_names)
        except RegistryImportError as e:
            if isinstance(e, StorageUnavailableError):
                raise
            raise _RecordFailed.from_error(ImportStage.RESOLVE_ARTISTS, e)
        result.state = RecordState.ARTISTS_RESOLVED

        photo_keys = await self._cache_photos(draft, result, dry_run, deadline)
        result.state = RecordState.MEDIA_CACHED

        fingerprint = compute_fingerprint(draft, artist_ids, photo_keys)
        if dry_run:
            existing = await self._storage_call(
                self.repository.get_artwork_by_source, draft.source_kind, draft.external_id
            )
            if existing is None:
                result.outcome = PersistOutcome.CREATED
            elif existing.import_fingerprint == fingerprint and None not in artist_ids:
                result.outcome = PersistOutcome.UNCHANGED
            else:
                result.outcome = PersistOutcome.UPDATED
        else:
            write = ArtworkWrite(
                source_kind=draft.source_kind,
                external_id=draft.external_id,
                title=draft.title,
                description=draft.description,
                tags=draft.tags,
                keywords=draft.keywords,
                lat=draft.lat,
                lon=draft.lon,
                artist_ids=artist_ids,
                photo_keys=photo_keys,
                fingerprint=fingerprint,
            )
            try:
                _, result.outcome = await self._storage_call(self.repository.persist_artwork, write)
            except sqlite3.IntegrityError as e:
                raise _RecordFailed(ImportStage.PERSIST, "INTEGRITY", f"Integrity error: {e}")
        result.state = RecordState.PERSISTED

    async def _cache_photos(
        self,
        draft: NormalizedArtworkDraft,
        result: RecordResult,
        dry_run: bool,
        deadline: Optional[float],
    ) -> list[str]:
        """Cache a draft's photos in order; failed photos are left out."""
        if dry_run:
            # Fingerprint as if every photo caches; nothing is fetched
            return [url_cache_key(url) for url in draft.photo_urls]

        keys = []
        for url in draft.photo_urls:
            if not self.media_caching:
                ref = await self._storage_call(self.media_cache.lookup, url)
                if ref is not None:
                    keys.append(ref.cache_key)
                continue
            try:
                ref = await self._storage_call_async(self.media_cache.cache(url, deadline=deadline))
            except MediaFetchError as e:
                logger.warning(f"[{draft.source_kind.value}] {draft.external_id}: photo {url} not cached ({e.reason})")
                result.media_failures.append(
                    MediaFailure(external_id=draft.external_id, url=url, reason=e.reason)
                )
                continue
            keys.append(ref.cache_key)
            result.media_cached += 1
        return keys

    async def _storage_call(self, fn, *args):
        """
        Run a blocking repository call in the default executor.

        Each executor thread gets its own sqlite connection, so workers
        overlap database work as well as network I/O. Database outages are
        raised as StorageUnavailableError.
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args))
        except sqlite3.IntegrityError:
            raise
        except sqlite3.DatabaseError as e:
            raise StorageUnavailableError(f"Registry database unavailable: {e}") from e

    async def _storage_call_async(self, awaitable):
        try:
            return await awaitable
        except sqlite3.IntegrityError:
            raise
        except sqlite3.DatabaseError as e:
            raise StorageUnavailableError(f"Registry database unavailable: {e}") from e

    def _mark_run_failed(self, run_id: int, summary: BatchSummary, error: BaseException) -> None:
        details = summary.to_dict()
        details["error"] = str(error)
        try:
            self.repository.finish_import_run(run_id, ImportRunStatus.FAILED, details)
        except sqlite3.Error as e:
            logger.error(f"Could not mark import run {run_id} failed: {e}")

    def preview(self, adapter: SourceAdapter, payload: Any, limit: int = 10) -> list[dict]:
        """
        Preview normalized records without writing.

        Returns:
            List of normalized record dicts (or the normalization error)
        """
        results = []
        output = adapter.parse(payload)
        for record in output.records[:limit]:
            try:
                draft = self.normalizer.normalize(record)
            except RegistryImportError as e:
                results.append({"external_id": record.external_id, "error": e.message})
                continue
            results.append({
                "external_id": draft.external_id,
                "title": draft.title,
                "tags": draft.tags,
                "keywords": draft.keywords,
                "artist_names": draft.artist_names,
                "photo_urls": draft.photo_urls,
                "lat": draft.lat,
                "lon": draft.lon,
            })
        return results
