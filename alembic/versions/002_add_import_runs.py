"""Add import_runs table.

Revision ID: 002
Revises: 001
Create Date: 2025-10-20

One row per non-dry-run import batch, with the payload hash and the
JSON batch summary, so operators can audit and re-run imports.
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection

    raw_conn.executescript("""
        CREATE TABLE IF NOT EXISTS import_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            source_kind TEXT NOT NULL,
            payload_hash TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'in_progress',
            summary TEXT,
            started_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            finished_at TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_import_runs_source
        ON import_runs(source_kind, started_at DESC);
    """)


def downgrade() -> None:
    conn = op.get_bind()
    raw_conn = conn.connection.dbapi_connection

    raw_conn.execute("DROP INDEX IF EXISTS idx_import_runs_source")
    raw_conn.execute("DROP TABLE IF EXISTS import_runs")
