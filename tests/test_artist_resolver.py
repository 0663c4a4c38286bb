"""
Tests for artist name normalization and find-or-create resolution.
"""

import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from artregistry.errors import ArtistResolutionConflict
from artregistry.ingestion.entities import ArtistResolver, dedupe_artist_names, normalize_artist_name
from artregistry.services.artwork_repository import ArtworkRepository


class TestNormalizeArtistName:

    @pytest.mark.parametrize("name", ["Ann Lee", "  ann   LEE ", "ANN\tLee", "Ann Lee"])
    def test_case_and_whitespace_insensitive(self, name):
        assert normalize_artist_name(name) == "ann lee"

    def test_dedupe_keeps_first_display_name(self):
        assert dedupe_artist_names(["Ann  Lee", "ann lee", "", "Bo Chen", "ANN LEE"]) == [
            ("Ann Lee", "ann lee"),
            ("Bo Chen", "bo chen"),
        ]


class TestArtistResolver:

    def test_resolve_creates_once(self, repo):
        resolver = ArtistResolver(repo)
        first = resolver.resolve(["Ann Lee", "Bo Chen"])
        second = resolver.resolve(["ann  lee", "BO CHEN"])

        assert first == second
        assert resolver.created_count == 2
        assert repo.count_artists() == 2

    def test_duplicates_collapse_in_order(self, repo):
        ids = ArtistResolver(repo).resolve(["Bo Chen", "Ann Lee", "bo chen"])
        assert len(ids) == 2
        assert repo.get_artist(ids[0]).name == "Bo Chen"
        assert repo.get_artist(ids[1]).name == "Ann Lee"

    def test_empty_input(self, repo):
        assert ArtistResolver(repo).resolve([]) == []
        assert repo.count_artists() == 0

    def test_preview_never_creates(self, repo):
        resolver = ArtistResolver(repo)
        (ann_id,) = resolver.resolve(["Ann Lee"])
        assert resolver.preview(["ANN LEE", "New Person"]) == [ann_id, None]
        assert repo.count_artists() == 1

    def test_conflict_after_retry(self, repo, monkeypatch):
        calls = []

        def always_conflict(name, normalized):
            calls.append(normalized)
            raise sqlite3.IntegrityError("UNIQUE constraint failed")

        monkeypatch.setattr(repo, "find_or_create_artist", always_conflict)
        with pytest.raises(ArtistResolutionConflict) as exc_info:
            ArtistResolver(repo).resolve(["Ann Lee"])
        assert calls == ["ann lee", "ann lee"]
        assert exc_info.value.reason == "ARTIST_RESOLUTION_CONFLICT"

    def test_retry_succeeds(self, repo, monkeypatch):
        real = repo.find_or_create_artist
        attempts = []

        def flaky(name, normalized):
            attempts.append(name)
            if len(attempts) == 1:
                return None, False
            return real(name, normalized)

        monkeypatch.setattr(repo, "find_or_create_artist", flaky)
        ids = ArtistResolver(repo).resolve(["Ann Lee"])
        assert len(ids) == 1
        assert len(attempts) == 2


class TestConcurrentResolution:

    def test_parallel_resolvers_create_one_artist(self, db_path):
        """Separate repositories racing on the same name end with one row."""
        names = ["Ann Lee", "ann lee", "ANN  LEE", " Ann Lee "] * 4
        # First connection switches the file to WAL before the race starts
        check = ArtworkRepository(db_path)
        assert check.count_artists() == 0

        def resolve(name):
            repository = ArtworkRepository(db_path)
            try:
                return ArtistResolver(repository).resolve([name])[0]
            finally:
                repository.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(resolve, names))

        assert len(set(ids)) == 1
        assert check.count_artists() == 1
        check.close()
