"""
Tests for ArtworkRepository.
"""

import sqlite3
from datetime import datetime, timezone

import pytest

from artregistry.models.enums import ImportRunStatus, PersistOutcome, SourceKind
from artregistry.services.artwork_repository import ArtworkRepository, ArtworkWrite, CacheRef


def _write(external_id="101", fingerprint="fp-1", **overrides):
    values = dict(
        source_kind=SourceKind.VANCOUVER,
        external_id=external_id,
        title="Digital Orca",
        description=None,
        tags={"material": "aluminum"},
        keywords=[],
        lat=49.28,
        lon=-123.11,
        artist_ids=[],
        photo_keys=[],
        fingerprint=fingerprint,
    )
    values.update(overrides)
    return ArtworkWrite(**values)


def _cache_ref(key_char="a", path=None):
    key = key_char * 64
    return CacheRef(
        cache_key=key,
        stored_path=path or f"photos/2025/10/15/{key}.jpg",
        source_url=f"https://photos.example.com/{key_char}.jpg",
        fetched_at=datetime(2025, 10, 15, tzinfo=timezone.utc),
        content_type="image/jpeg",
        size_bytes=1234,
    )


class TestPersistArtwork:

    def test_create_then_unchanged(self, repo):
        artwork_id, outcome = repo.persist_artwork(_write())
        assert outcome == PersistOutcome.CREATED

        same_id, outcome = repo.persist_artwork(_write())
        assert outcome == PersistOutcome.UNCHANGED
        assert same_id == artwork_id
        assert repo.count_artworks() == 1

    def test_update_replaces_links(self, repo):
        ann, _ = repo.find_or_create_artist("Ann Lee", "ann lee")
        bo, _ = repo.find_or_create_artist("Bo Chen", "bo chen")
        repo.persist_artwork(_write(artist_ids=[ann.id, bo.id]))

        artwork_id, outcome = repo.persist_artwork(
            _write(fingerprint="fp-2", title="Digital Orca II", artist_ids=[bo.id])
        )
        assert outcome == PersistOutcome.UPDATED

        artwork = repo.get_artwork(artwork_id)
        assert artwork.title == "Digital Orca II"
        assert artwork.artist_ids == [bo.id]
        assert artwork.import_fingerprint == "fp-2"

    def test_zero_artists_is_valid(self, repo):
        artwork_id, _ = repo.persist_artwork(_write(artist_ids=[]))
        artwork = repo.get_artwork_by_source(SourceKind.VANCOUVER, "101")
        assert artwork.id == artwork_id
        assert artwork.artist_ids == []
        assert repo.get_stats()["artworks_without_artists"] == 1

    def test_photo_order_kept(self, repo):
        first, second = _cache_ref("b"), _cache_ref("c")
        repo.save_cache_ref(first)
        repo.save_cache_ref(second)
        artwork_id, _ = repo.persist_artwork(_write(photo_keys=[second.cache_key, first.cache_key]))
        assert repo.get_artwork(artwork_id).photo_keys == [second.cache_key, first.cache_key]

    def test_unknown_photo_key_rolls_back(self, repo):
        with pytest.raises(sqlite3.IntegrityError):
            repo.persist_artwork(_write(photo_keys=["f" * 64]))
        assert repo.count_artworks() == 0

    def test_same_external_id_other_source_is_separate(self, repo):
        repo.persist_artwork(_write())
        repo.persist_artwork(_write(source_kind=SourceKind.BURNABY))
        assert repo.count_artworks() == 2
        assert repo.count_artworks(SourceKind.BURNABY) == 1
        assert repo.get_artwork_by_source(SourceKind.BURNABY, "101").import_fingerprint == "fp-1"
        assert repo.get_artwork_by_source(SourceKind.RICHMOND, "101") is None


class TestArtists:

    def test_find_or_create_is_idempotent(self, repo):
        created, was_created = repo.find_or_create_artist("Ann Lee", "ann lee")
        found, was_created_again = repo.find_or_create_artist("ANN LEE", "ann lee")
        assert was_created and not was_created_again
        assert found.id == created.id
        assert found.name == "Ann Lee"
        assert repo.count_artists() == 1

    def test_unlink_keeps_artist(self, repo):
        ann, _ = repo.find_or_create_artist("Ann Lee", "ann lee")
        first_id, _ = repo.persist_artwork(_write(external_id="1", artist_ids=[ann.id]))
        second_id, _ = repo.persist_artwork(_write(external_id="2", artist_ids=[ann.id]))

        assert repo.unlink_artist(first_id, ann.id) is True
        assert repo.unlink_artist(first_id, ann.id) is False

        assert repo.get_artist(ann.id) is not None
        assert repo.get_artwork(first_id).artist_ids == []
        assert repo.get_artwork(second_id).artist_ids == [ann.id]


class TestCacheRefs:

    def test_save_and_get(self, repo):
        ref = _cache_ref()
        repo.save_cache_ref(ref)
        stored = repo.get_cache_ref(ref.cache_key)
        assert stored == ref

    def test_rejects_url_in_stored_path(self, repo):
        with pytest.raises(sqlite3.IntegrityError):
            repo.save_cache_ref(_cache_ref(path="photos/https://photos.example.com/x.jpg"))

    def test_rejects_unknown_prefix(self, repo):
        with pytest.raises(sqlite3.IntegrityError):
            repo.save_cache_ref(_cache_ref(path="medium/x.jpg"))

    def test_delete_cascades_to_artwork_photos(self, repo):
        ref = _cache_ref()
        repo.save_cache_ref(ref)
        artwork_id, _ = repo.persist_artwork(_write(photo_keys=[ref.cache_key]))

        assert repo.delete_cache_ref(ref.cache_key) is True
        artwork = repo.get_artwork(artwork_id)
        assert artwork.photo_keys == []
        assert artwork.import_fingerprint is None
        assert list(repo.iter_cache_refs()) == []

    def test_delete_leaves_unrelated_fingerprints(self, repo):
        ref = _cache_ref()
        repo.save_cache_ref(ref)
        repo.persist_artwork(_write(external_id="1", photo_keys=[ref.cache_key]))
        other_id, _ = repo.persist_artwork(_write(external_id="2", fingerprint="fp-other"))

        repo.delete_cache_ref(ref.cache_key)
        assert repo.get_artwork(other_id).import_fingerprint == "fp-other"


class TestImportRuns:

    def test_run_lifecycle(self, repo):
        run_id = repo.start_import_run(SourceKind.RICHMOND, "abc")
        repo.finish_import_run(run_id, ImportRunStatus.COMPLETE, {"created": 3})

        runs = repo.get_import_runs(SourceKind.RICHMOND)
        assert len(runs) == 1
        assert runs[0]["status"] == "complete"
        assert runs[0]["summary"] == {"created": 3}
        assert runs[0]["finished_at"] is not None
        assert repo.get_import_runs(SourceKind.BURNABY) == []


class TestSeparateInstances:

    def test_two_repositories_share_constraints(self, db_path):
        first, second = ArtworkRepository(db_path), ArtworkRepository(db_path)
        try:
            a, created_a = first.find_or_create_artist("Ann Lee", "ann lee")
            b, created_b = second.find_or_create_artist("Ann  Lee", "ann lee")
            assert created_a and not created_b
            assert a.id == b.id
        finally:
            first.close()
            second.close()
