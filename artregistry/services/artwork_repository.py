"""
Artwork registry repository with SQLite backend.

Provides thread-safe access to artworks, artists, artist links, cached
photo references and the import run log. Schema is created by Alembic
(see artregistry.db.ensure_schema).

Atomicity guarantees relied on by the import pipeline:
- find_or_create_artist is one INSERT .. ON CONFLICT DO NOTHING plus a
  lookup, keyed on the UNIQUE normalized_name, so concurrent importers
  (threads or processes) never create two rows for one name.
- persist_artwork writes the artwork row, its artist links and its photo
  refs in one BEGIN IMMEDIATE transaction.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Sequence

from ..db import BaseRepository
from ..models.enums import ImportRunStatus, PersistOutcome, SourceKind

logger = logging.getLogger(__name__)


@dataclass
class ArtistRecord:
    """An artist row."""
    id: str
    name: str
    normalized_name: str


@dataclass
class CacheRef:
    """A cached photo: where its bytes live and where they came from."""
    cache_key: str
    stored_path: str
    source_url: str
    fetched_at: datetime
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None


@dataclass
class ArtworkRecord:
    """An artwork row with its ordered artist ids and photo cache keys."""
    id: str
    source_kind: SourceKind
    external_id: str
    title: str
    description: Optional[str] = None
    tags: dict[str, Any] = field(default_factory=dict)
    keywords: list[str] = field(default_factory=list)
    lat: Optional[float] = None
    lon: Optional[float] = None
    import_fingerprint: Optional[str] = None
    artist_ids: list[str] = field(default_factory=list)
    photo_keys: list[str] = field(default_factory=list)


@dataclass
class ArtworkWrite:
    """Everything persist_artwork writes for one record."""
    source_kind: SourceKind
    external_id: str
    title: str
    description: Optional[str]
    tags: dict[str, Any]
    keywords: list[str]
    lat: Optional[float]
    lon: Optional[float]
    artist_ids: Sequence[str]
    photo_keys: Sequence[str]
    fingerprint: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ArtworkRepository(BaseRepository):
    """
    Thread-safe SQLite repository for the art registry.

    Each thread gets its own connection; separate instances pointed at the
    same file coordinate only through SQLite locking and constraints.
    """

    def __init__(self, db_path: Optional[str] = None):
        super().__init__(db_path, use_wal=True)

    # === Artists ===

    def find_artist(self, normalized_name: str) -> Optional[ArtistRecord]:
        """Look up an artist by normalized name without creating it."""
        conn = self._get_connection()
        row = conn.execute(
            "SELECT id, name, normalized_name FROM artists WHERE normalized_name = ?",
            (normalized_name,),
        ).fetchone()
        return ArtistRecord(**dict(row)) if row else None

    def find_or_create_artist(self, name: str, normalized_name: str) -> tuple[Optional[ArtistRecord], bool]:
        """
        Atomically find or create an artist.

        Returns:
            (artist, created). artist is None only if the row could not be
            read back after the insert, which callers treat as a conflict.
        """
        with self._write_transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO artists (id, name, normalized_name)
                VALUES (?, ?, ?)
                ON CONFLICT(normalized_name) DO NOTHING
                """,
                (str(uuid.uuid4()), name, normalized_name),
            )
            created = cursor.rowcount == 1
            cursor.execute(
                "SELECT id, name, normalized_name FROM artists WHERE normalized_name = ?",
                (normalized_name,),
            )
            row = cursor.fetchone()

        if created:
            logger.debug(f"Created artist '{name}'")
        return (ArtistRecord(**dict(row)) if row else None), created

    def get_artist(self, artist_id: str) -> Optional[ArtistRecord]:
        conn = self._get_connection()
        row = conn.execute(
            "SELECT id, name, normalized_name FROM artists WHERE id = ?",
            (artist_id,),
        ).fetchone()
        return ArtistRecord(**dict(row)) if row else None

    def count_artists(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM artists").fetchone()[0]

    # === Artworks ===

    def get_artwork_by_source(self, source_kind: SourceKind, external_id: str) -> Optional[ArtworkRecord]:
        """Fetch an artwork by its stable source key."""
        conn = self._get_connection()
        row = conn.execute(
            "SELECT * FROM artworks WHERE source_kind = ? AND external_id = ?",
            (SourceKind(source_kind).value, external_id),
        ).fetchone()
        return self._row_to_artwork(conn, row) if row else None

    def get_artwork(self, artwork_id: str) -> Optional[ArtworkRecord]:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM artworks WHERE id = ?", (artwork_id,)).fetchone()
        return self._row_to_artwork(conn, row) if row else None

    def persist_artwork(self, write: ArtworkWrite) -> tuple[str, PersistOutcome]:
        """
        Create or update an artwork with its artist links and photo refs.

        All rows are written in one transaction. If the stored fingerprint
        equals write.fingerprint nothing is written.

        Returns:
            (artwork_id, outcome)
        """
        kind = SourceKind(write.source_kind).value
        with self._write_transaction() as cursor:
            cursor.execute(
                "SELECT id, import_fingerprint FROM artworks WHERE source_kind = ? AND external_id = ?",
                (kind, write.external_id),
            )
            existing = cursor.fetchone()

            if existing and existing["import_fingerprint"] == write.fingerprint:
                return existing["id"], PersistOutcome.UNCHANGED

            values = (
                write.title,
                write.description,
                json.dumps(write.tags, sort_keys=True, ensure_ascii=False),
                json.dumps(write.keywords, ensure_ascii=False),
                write.lat,
                write.lon,
                write.fingerprint,
            )

            if existing:
                artwork_id = existing["id"]
                cursor.execute(
                    """
                    UPDATE artworks
                    SET title = ?, description = ?, tags = ?, keywords = ?,
                        lat = ?, lon = ?, import_fingerprint = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    values + (artwork_id,),
                )
                cursor.execute("DELETE FROM artwork_artists WHERE artwork_id = ?", (artwork_id,))
                cursor.execute("DELETE FROM artwork_photos WHERE artwork_id = ?", (artwork_id,))
                outcome = PersistOutcome.UPDATED
            else:
                artwork_id = str(uuid.uuid4())
                cursor.execute(
                    """
                    INSERT INTO artworks
                        (id, source_kind, external_id, title, description, tags, keywords,
                         lat, lon, import_fingerprint)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (artwork_id, kind, write.external_id) + values,
                )
                outcome = PersistOutcome.CREATED

            cursor.executemany(
                "INSERT OR IGNORE INTO artwork_artists (artwork_id, artist_id, position) VALUES (?, ?, ?)",
                [(artwork_id, artist_id, i) for i, artist_id in enumerate(write.artist_ids)],
            )
            cursor.executemany(
                "INSERT OR IGNORE INTO artwork_photos (artwork_id, cache_key, position) VALUES (?, ?, ?)",
                [(artwork_id, key, i) for i, key in enumerate(write.photo_keys)],
            )

        logger.debug(f"{outcome.value} artwork {kind}/{write.external_id} ({artwork_id})")
        return artwork_id, outcome

    def unlink_artist(self, artwork_id: str, artist_id: str) -> bool:
        """
        Remove one artwork-artist link (curation).

        The artist row is kept even if no artwork links to it any more.

        Returns:
            True if a link was removed
        """
        with self._transaction() as cursor:
            cursor.execute(
                "DELETE FROM artwork_artists WHERE artwork_id = ? AND artist_id = ?",
                (artwork_id, artist_id),
            )
            removed = cursor.rowcount > 0
        if removed:
            logger.info(f"Unlinked artist {artist_id} from artwork {artwork_id}")
        return removed

    def count_artworks(self, source_kind: Optional[SourceKind] = None) -> int:
        conn = self._get_connection()
        if source_kind is None:
            return conn.execute("SELECT COUNT(*) FROM artworks").fetchone()[0]
        return conn.execute(
            "SELECT COUNT(*) FROM artworks WHERE source_kind = ?",
            (SourceKind(source_kind).value,),
        ).fetchone()[0]

    def _row_to_artwork(self, conn, row) -> ArtworkRecord:
        artist_ids = [
            r["artist_id"] for r in conn.execute(
                "SELECT artist_id FROM artwork_artists WHERE artwork_id = ? ORDER BY position",
                (row["id"],),
            )
        ]
        photo_keys = [
            r["cache_key"] for r in conn.execute(
                "SELECT cache_key FROM artwork_photos WHERE artwork_id = ? ORDER BY position",
                (row["id"],),
            )
        ]
        return ArtworkRecord(
            id=row["id"],
            source_kind=SourceKind(row["source_kind"]),
            external_id=row["external_id"],
            title=row["title"],
            description=row["description"],
            tags=json.loads(row["tags"] or "{}"),
            keywords=json.loads(row["keywords"] or "[]"),
            lat=row["lat"],
            lon=row["lon"],
            import_fingerprint=row["import_fingerprint"],
            artist_ids=artist_ids,
            photo_keys=photo_keys,
        )

    # === Cache refs ===

    def get_cache_ref(self, cache_key: str) -> Optional[CacheRef]:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM cache_refs WHERE cache_key = ?", (cache_key,)).fetchone()
        return self._row_to_cache_ref(row) if row else None

    def save_cache_ref(self, ref: CacheRef) -> None:
        """Insert or replace the cache ref for ref.cache_key."""
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO cache_refs
                    (cache_key, stored_path, source_url, content_type, size_bytes, fetched_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(cache_key) DO UPDATE SET
                    stored_path = excluded.stored_path,
                    source_url = excluded.source_url,
                    content_type = excluded.content_type,
                    size_bytes = excluded.size_bytes,
                    fetched_at = excluded.fetched_at
                """,
                (
                    ref.cache_key,
                    ref.stored_path,
                    ref.source_url,
                    ref.content_type,
                    ref.size_bytes,
                    ref.fetched_at.isoformat(),
                ),
            )

    def delete_cache_ref(self, cache_key: str) -> bool:
        """
        Delete a cache ref; artwork photo refs to it cascade.

        Artworks that showed the photo get their import fingerprint cleared,
        so the next import rewrites their photo links.
        """
        with self._transaction() as cursor:
            cursor.execute(
                """
                UPDATE artworks SET import_fingerprint = NULL
                WHERE id IN (SELECT artwork_id FROM artwork_photos WHERE cache_key = ?)
                """,
                (cache_key,),
            )
            cursor.execute("DELETE FROM cache_refs WHERE cache_key = ?", (cache_key,))
            return cursor.rowcount > 0

    def iter_cache_refs(self) -> Iterator[CacheRef]:
        conn = self._get_connection()
        rows = conn.execute("SELECT * FROM cache_refs ORDER BY fetched_at").fetchall()
        for row in rows:
            yield self._row_to_cache_ref(row)

    @staticmethod
    def _row_to_cache_ref(row) -> CacheRef:
        return CacheRef(
            cache_key=row["cache_key"],
            stored_path=row["stored_path"],
            source_url=row["source_url"],
            fetched_at=_parse_timestamp(row["fetched_at"]),
            content_type=row["content_type"],
            size_bytes=row["size_bytes"],
        )

    # === Import runs ===

    def start_import_run(self, source_kind: SourceKind, payload_hash: str) -> int:
        """Record the start of an import batch. Returns the run id."""
        with self._transaction() as cursor:
            cursor.execute(
                "INSERT INTO import_runs (source_kind, payload_hash, status) VALUES (?, ?, ?)",
                (SourceKind(source_kind).value, payload_hash, ImportRunStatus.IN_PROGRESS.value),
            )
            return cursor.lastrowid

    def finish_import_run(self, run_id: int, status: ImportRunStatus, summary: Optional[dict] = None) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                """
                UPDATE import_runs
                SET status = ?, summary = ?, finished_at = ?
                WHERE id = ?
                """,
                (
                    ImportRunStatus(status).value,
                    json.dumps(summary) if summary is not None else None,
                    _utcnow().isoformat(),
                    run_id,
                ),
            )

    def get_import_runs(self, source_kind: Optional[SourceKind] = None, limit: int = 10) -> list[dict]:
        """Most recent import runs, newest first."""
        conn = self._get_connection()
        if source_kind is None:
            rows = conn.execute(
                "SELECT * FROM import_runs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM import_runs WHERE source_kind = ? ORDER BY id DESC LIMIT ?",
                (SourceKind(source_kind).value, limit),
            ).fetchall()
        runs = []
        for row in rows:
            run = dict(row)
            run["summary"] = json.loads(run["summary"]) if run["summary"] else None
            runs.append(run)
        return runs

    # === Stats ===

    def get_stats(self) -> dict:
        """Registry counts for the CLI --stats flag."""
        conn = self._get_connection()
        by_source = {
            row["source_kind"]: row["n"]
            for row in conn.execute(
                "SELECT source_kind, COUNT(*) AS n FROM artworks GROUP BY source_kind"
            )
        }
        cache = conn.execute(
            "SELECT COUNT(*) AS n, COALESCE(SUM(size_bytes), 0) AS total FROM cache_refs"
        ).fetchone()
        unlinked = conn.execute(
            """
            SELECT COUNT(*) FROM artworks a
            WHERE NOT EXISTS (SELECT 1 FROM artwork_artists l WHERE l.artwork_id = a.id)
            """
        ).fetchone()[0]
        return {
            "artworks": sum(by_source.values()),
            "artworks_by_source": by_source,
            "artists": self.count_artists(),
            "artworks_without_artists": unlinked,
            "cached_images": cache["n"],
            "cached_bytes": cache["total"],
        }

