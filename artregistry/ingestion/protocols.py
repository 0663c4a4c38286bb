"""
Protocols and data classes for artwork ingestion.

Defines the interface that source adapters must implement and the
intermediate records that flow through the import pipeline.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from ..models.enums import ImportStage, SourceKind
from ..models.response import BatchSummaryResponse, StageFailure


@dataclass
class RawImportRecord:
    """
    A raw artwork record from an open-data source.

    This is the standard intermediate format that all adapters produce.
    `fields` keeps source-native names; the FieldNormalizer maps them
    onto tag schema keys.
    """
    source_kind: SourceKind
    external_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    photo_urls: list[str] = field(default_factory=list)
    artist_names: list[str] = field(default_factory=list)
    lat: Optional[float] = None
    lon: Optional[float] = None
    # Source-side modification date, used by the --since/--until filter
    modified_at: Optional[date] = None


@dataclass
class NormalizedArtworkDraft:
    """Canonical artwork shape produced by the FieldNormalizer."""
    source_kind: SourceKind
    external_id: str
    title: str
    description: Optional[str] = None
    artist_names: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    tags: dict[str, Any] = field(default_factory=dict)
    photo_urls: list[str] = field(default_factory=list)
    lat: Optional[float] = None
    lon: Optional[float] = None


@dataclass
class RejectedRecord:
    """A source record the adapter refused (reported as Skipped)."""
    external_id: Optional[str]
    reason: str
    index: Optional[int] = None


@dataclass
class AdapterOutput:
    records: list[RawImportRecord] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)


class SourceAdapter(Protocol):
    """
    Protocol for source adapters.

    Each adapter understands one open-data export format and converts it
    into RawImportRecord objects. Adapters are pure: they never touch the
    database, the network, or global state.
    """

    source_kind: SourceKind

    def load(self, path: Union[str, Path]) -> Any:
        """
        Read a source export from disk.

        Returns:
            The decoded payload, ready for parse()
        """
        ...

    def parse(self, payload: Any) -> AdapterOutput:
        """
        Convert a payload into records.

        Raises:
            SourceFormatError: If the payload as a whole has the wrong shape.
                Individual bad records go to AdapterOutput.rejected instead.
        """
        ...


@dataclass
class RecordFailure:
    """One record that stopped at a pipeline stage."""
    external_id: str
    stage: ImportStage
    reason: str
    message: str = ""


@dataclass
class MediaFailure:
    """One photo that could not be cached (the record itself still imported)."""
    external_id: str
    url: str
    reason: str


@dataclass
class BatchSummary:
    """Statistics from an import batch."""
    source_kind: SourceKind
    dry_run: bool = False
    records_read: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    filtered: int = 0
    media_cached: int = 0
    artists_created: int = 0
    failures: list[RecordFailure] = field(default_factory=list)
    skipped: list[RejectedRecord] = field(default_factory=list)
    media_failures: list[MediaFailure] = field(default_factory=list)
    duration_seconds: Optional[float] = None

    @property
    def persisted(self) -> int:
        return self.created + self.updated + self.unchanged

    @property
    def failed(self) -> int:
        return len(self.failures)

    def failures_by_stage(self) -> dict[tuple[str, str], list[str]]:
        """Group failed external ids by (stage, reason)."""
        grouped: dict[tuple[str, str], list[str]] = {}
        for failure in self.failures:
            grouped.setdefault((failure.stage.value, failure.reason), []).append(failure.external_id)
        return grouped

    def media_failures_by_reason(self) -> dict[str, int]:
        return dict(Counter(f.reason for f in self.media_failures))

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/storage."""
        return {
            "source_kind": self.source_kind.value,
            "dry_run": self.dry_run,
            "records_read": self.records_read,
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "skipped": len(self.skipped),
            "filtered": self.filtered,
            "media_cached": self.media_cached,
            "media_failed": len(self.media_failures),
            "artists_created": self.artists_created,
            "failures": {
                f"{stage}:{reason}": len(ids)
                for (stage, reason), ids in self.failures_by_stage().items()
            },
            "duration_seconds": self.duration_seconds,
        }

    def to_response(self) -> BatchSummaryResponse:
        return BatchSummaryResponse(
            source_kind=self.source_kind.value,
            dry_run=self.dry_run,
            total=self.records_read,
            created=self.created,
            updated=self.updated,
            unchanged=self.unchanged,
            failed=self.failed,
            skipped=len(self.skipped),
            filtered=self.filtered,
            media_cached=self.media_cached,
            media_failed=len(self.media_failures),
            artists_created=self.artists_created,
            failures=[
                StageFailure(stage=stage, reason=reason, count=len(ids), external_ids=ids)
                for (stage, reason), ids in self.failures_by_stage().items()
            ],
            skipped_records=[
                {"external_id": r.external_id or f"#{r.index}", "reason": r.reason}
                for r in self.skipped
            ],
            media_failures=[
                {"external_id": m.external_id, "url": m.url, "reason": m.reason}
                for m in self.media_failures
            ],
            duration_seconds=self.duration_seconds,
        )
