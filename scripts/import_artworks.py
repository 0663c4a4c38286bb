#!/usr/bin/env python3
"""
Public art import CLI tool.

Usage:
    python scripts/import_artworks.py --source vancouver --input public-art.json --artists public-art-artists.json
    python scripts/import_artworks.py --source burnaby --input burnaby.geojson --since 2025-01-01
    python scripts/import_artworks.py --source richmond --input richmond.geojson --dry-run
    python scripts/import_artworks.py --source richmond --input richmond.geojson --preview 5
    python scripts/import_artworks.py --stats            # Show registry statistics
    python scripts/import_artworks.py --purge-missing    # Drop cache refs whose files are gone
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_path = Path(__file__).parent.parent
sys.path.insert(0, str(project_path))

from dotenv import load_dotenv

from artregistry.config import Config
from artregistry.db import ensure_schema
from artregistry.errors import RegistryImportError
from artregistry.ingestion.adapters import VancouverAdapter, get_adapter
from artregistry.ingestion.pipeline import ImportCoordinator
from artregistry.models.enums import SourceKind
from artregistry.services.artwork_repository import ArtworkRepository
from artregistry.services.media_cache import MediaCacheManager
from artregistry.services.media_storage import get_media_storage


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def build_adapter(source: str, artists_path: str = None):
    kind = SourceKind(source)
    if kind == SourceKind.VANCOUVER and artists_path:
        return VancouverAdapter.from_artist_export(artists_path)
    return get_adapter(kind)


def import_source(args) -> int:
    """Run one import batch and print its summary. Returns the exit code."""
    print(f"\n{'='*60}")
    print(f"Importing: {args.source}{' (dry run)' if args.dry_run else ''}")
    print(f"{'='*60}")

    adapter = build_adapter(args.source, args.artists)
    payload = adapter.load(args.input)

    repo = ArtworkRepository()
    coordinator = ImportCoordinator(
        repository=repo,
        media_cache=MediaCacheManager(repo, get_media_storage()),
    )
    try:
        summary = coordinator.run_sync(
            adapter,
            payload,
            dry_run=args.dry_run,
            modified_since=args.since,
            modified_until=args.until,
        )
    finally:
        repo.close()

    print(f"\nCompleted in {summary.duration_seconds:.1f}s")
    print(f"  Records read: {summary.records_read:,}")
    print(f"  Created: {summary.created:,}")
    print(f"  Updated: {summary.updated:,}")
    print(f"  Unchanged: {summary.unchanged:,}")
    print(f"  Filtered by date: {summary.filtered:,}")
    print(f"  Artists created: {summary.artists_created:,}")
    print(f"  Photos cached: {summary.media_cached:,}")

    if summary.skipped:
        print(f"  Skipped (malformed): {len(summary.skipped)}")
        for rejected in summary.skipped[:5]:
            print(f"    - {rejected.external_id or f'#{rejected.index}'}: {rejected.reason}")
        if len(summary.skipped) > 5:
            print(f"    ... and {len(summary.skipped) - 5} more")

    if summary.failures:
        print(f"  Failed: {summary.failed}")
        for (stage, reason), ids in summary.failures_by_stage().items():
            shown = ", ".join(ids[:5])
            more = f" ... and {len(ids) - 5} more" if len(ids) > 5 else ""
            print(f"    - {stage} / {reason}: {shown}{more}")

    if summary.media_failures:
        print(f"  Photo failures: {len(summary.media_failures)}")
        for reason, count in sorted(summary.media_failures_by_reason().items()):
            print(f"    - {reason}: {count}")

    return 0


def show_stats():
    """Show registry statistics."""
    print("\n" + "="*60)
    print("Art Registry Statistics")
    print("="*60)

    repo = ArtworkRepository()
    stats = repo.get_stats()

    print(f"\nTotal artworks: {stats['artworks']:,}")
    for source, count in sorted(stats["artworks_by_source"].items()):
        print(f"  {source}: {count:,}")
    print(f"Artists: {stats['artists']:,}")
    print(f"Artworks without artists: {stats['artworks_without_artists']:,}")
    print(f"Cached images: {stats['cached_images']:,} ({stats['cached_bytes'] / (1024 * 1024):.1f} MB)")

    print("\nImport history:")
    for run in repo.get_import_runs(limit=5):
        summary = run["summary"] or {}
        print(
            f"  {run['started_at']}: {run['source_kind']} [{run['status']}] - "
            f"{summary.get('created', 0):,} created, {summary.get('updated', 0):,} updated, "
            f"{summary.get('failed', 0):,} failed"
        )

    repo.close()


def preview_source(args, limit: int):
    """Preview normalized records from a source export."""
    print(f"\nPreview: {args.source} (first {limit} records)")
    print("="*60)

    adapter = build_adapter(args.source, args.artists)
    payload = adapter.load(args.input)

    repo = ArtworkRepository()
    coordinator = ImportCoordinator(repository=repo, media_cache=MediaCacheManager(repo, get_media_storage()))
    for i, record in enumerate(coordinator.preview(adapter, payload, limit=limit), 1):
        if "error" in record:
            print(f"\n{i}. {record['external_id']}: ERROR {record['error']}")
            continue
        print(f"\n{i}. {record['title']} ({record['external_id']})")
        print(f"   Artists: {', '.join(record['artist_names']) or 'N/A'}")
        for key, value in sorted(record["tags"].items()):
            print(f"   {key}: {value}")
        if record["keywords"]:
            print(f"   Keywords: {', '.join(record['keywords'])}")
        print(f"   Photos: {len(record['photo_urls'])}")
    repo.close()


def purge_missing():
    repo = ArtworkRepository()
    removed = MediaCacheManager(repo, get_media_storage()).purge_missing()
    print(f"Removed {removed} cache refs with missing files")
    repo.close()


def main():
    parser = argparse.ArgumentParser(
        description="Public art import CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--source", "-s",
        choices=[kind.value for kind in SourceKind],
        help="Source export format"
    )
    parser.add_argument(
        "--input", "-i",
        help="Path to the source export (JSON or GeoJSON)"
    )
    parser.add_argument(
        "--artists",
        help="Vancouver artist directory export (maps artist ids to names)"
    )
    parser.add_argument(
        "--since",
        type=parse_date,
        help="Only import records modified on or after this date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--until",
        type=parse_date,
        help="Only import records modified on or before this date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Report what would change without writing or fetching anything"
    )
    parser.add_argument(
        "--preview", "-p",
        type=int,
        metavar="N",
        help="Print the first N normalized records"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show registry statistics"
    )
    parser.add_argument(
        "--purge-missing",
        action="store_true",
        help="Delete cache refs whose stored files no longer exist"
    )

    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, Config.log_level(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    ensure_schema(Config.database_path())

    if args.stats:
        show_stats()
        return

    if args.purge_missing:
        purge_missing()
        return

    if args.source and not args.input:
        parser.error("--source requires --input")

    if args.source and args.preview:
        preview_source(args, args.preview)
        return

    if args.source:
        try:
            code = import_source(args)
        except RegistryImportError as e:
            print(f"\nImport aborted ({e.reason}): {e.message}")
            sys.exit(1)
        show_stats()
        sys.exit(code)

    # Default: show help
    parser.print_help()


if __name__ == "__main__":
    main()
