"""Initial schema - artworks, artists, links and the media cache.

Revision ID: 001
Revises: None
Create Date: 2025-10-15

Creates core tables: artists, artworks, artwork_artists, cache_refs,
artwork_photos.

Note: import_runs is created in migration 002.
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Complete schema SQL inlined for immutability.
SCHEMA_SQL = """
-- Artists, deduplicated on the normalized (case-folded, whitespace-collapsed) name
CREATE TABLE IF NOT EXISTS artists (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    normalized_name TEXT NOT NULL UNIQUE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Artworks keyed by their stable source identity
CREATE TABLE IF NOT EXISTS artworks (
    id TEXT PRIMARY KEY,
    source_kind TEXT NOT NULL,
    external_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    tags TEXT NOT NULL DEFAULT '{}',
    keywords TEXT NOT NULL DEFAULT '[]',
    lat REAL,
    lon REAL,
    import_fingerprint TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(source_kind, external_id)
);

-- Many-to-many artwork <-> artist relation
CREATE TABLE IF NOT EXISTS artwork_artists (
    artwork_id TEXT NOT NULL,
    artist_id TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (artwork_id) REFERENCES artworks(id) ON DELETE CASCADE,
    FOREIGN KEY (artist_id) REFERENCES artists(id),
    UNIQUE(artwork_id, artist_id)
);

-- Cached remote photos, content-addressed by source URL hash
CREATE TABLE IF NOT EXISTS cache_refs (
    cache_key TEXT PRIMARY KEY,
    stored_path TEXT NOT NULL UNIQUE,
    source_url TEXT NOT NULL,
    content_type TEXT,
    size_bytes INTEGER,
    fetched_at TIMESTAMP NOT NULL,
    CHECK (
        substr(stored_path, 1, 9) = 'artworks/'
        OR substr(stored_path, 1, 12) = 'submissions/'
        OR substr(stored_path, 1, 10) = 'originals/'
        OR substr(stored_path, 1, 7) = 'photos/'
    ),
    CHECK (instr(stored_path, '://') = 0)
);

-- Ordered photo references of an artwork
CREATE TABLE IF NOT EXISTS artwork_photos (
    artwork_id TEXT NOT NULL,
    cache_key TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (artwork_id) REFERENCES artworks(id) ON DELETE CASCADE,
    FOREIGN KEY (cache_key) REFERENCES cache_refs(cache_key) ON DELETE CASCADE,
    UNIQUE(artwork_id, cache_key)
);

CREATE INDEX IF NOT EXISTS idx_artworks_source ON artworks(source_kind);
CREATE INDEX IF NOT EXISTS idx_artwork_artists_artist_id ON artwork_artists(artist_id);
CREATE INDEX IF NOT EXISTS idx_artwork_photos_cache_key ON artwork_photos(cache_key);
CREATE INDEX IF NOT EXISTS idx_cache_refs_fetched_at ON cache_refs(fetched_at);
"""


def upgrade() -> None:
    # Use raw DBAPI connection for multi-statement SQL
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection
    raw_conn.executescript(SCHEMA_SQL)


def downgrade() -> None:
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection

    # Drop tables in reverse dependency order
    tables = [
        "artwork_photos",
        "cache_refs",
        "artwork_artists",
        "artworks",
        "artists",
    ]
    for table in tables:
        raw_conn.execute(f"DROP TABLE IF EXISTS {table}")
