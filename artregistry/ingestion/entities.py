"""
Artist resolution for artwork ingestion.

Turns the ordered artist display names of a draft into artist ids,
creating artists on first sight. Identity is the normalized name only:
    case-folded, internal whitespace collapsed, trimmed.
No fuzzy or phonetic matching; near-duplicates are a curation problem.
"""

import logging
import sqlite3
import threading
from typing import Iterable, Optional

from ..errors import ArtistResolutionConflict
from ..services.artwork_repository import ArtworkRepository

logger = logging.getLogger(__name__)


def normalize_artist_name(name: str) -> str:
    """Deduplication key for an artist name."""
    return " ".join(name.casefold().split())


def dedupe_artist_names(names: Iterable[str]) -> list[tuple[str, str]]:
    """
    Collapse names that share a normalized form, keeping first-seen order.

    Returns:
        List of (display_name, normalized_name)
    """
    seen: set[str] = set()
    unique: list[tuple[str, str]] = []
    for name in names:
        if not name:
            continue
        key = normalize_artist_name(name)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append((" ".join(name.split()), key))
    return unique


class ArtistResolver:
    """
    Resolves artist names to artist ids through the repository.

    Find-or-create relies on the UNIQUE constraint on normalized_name,
    so it is safe across threads, coordinator instances and processes.
    A failed find-or-create is retried once, then raised as
    ArtistResolutionConflict.
    """

    MAX_ATTEMPTS = 2

    def __init__(self, repository: ArtworkRepository):
        self.repository = repository
        self.created_count = 0
        self._count_lock = threading.Lock()

    def resolve(self, names: Iterable[str]) -> list[str]:
        """
        Resolve names to artist ids, in input order, duplicates collapsed.

        Raises:
            ArtistResolutionConflict: If an artist could not be found or created
        """
        return [self._find_or_create(display, key) for display, key in dedupe_artist_names(names)]

    def preview(self, names: Iterable[str]) -> list[Optional[str]]:
        """Look names up without creating anything (None = would be created)."""
        ids = []
        for _, key in dedupe_artist_names(names):
            artist = self.repository.find_artist(key)
            ids.append(artist.id if artist else None)
        return ids

    def _find_or_create(self, display: str, key: str) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                artist, created = self.repository.find_or_create_artist(display, key)
            except sqlite3.IntegrityError as e:
                last_error = e
                artist, created = None, False
            if artist is not None:
                if created:
                    with self._count_lock:
                        self.created_count += 1
                return artist.id
            logger.warning(f"Artist find-or-create conflict for '{display}' (attempt {attempt})")

        raise ArtistResolutionConflict(
            f"Could not resolve artist '{display}' after {self.MAX_ATTEMPTS} attempts"
            + (f": {last_error}" if last_error else ""),
            name=display,
        )
