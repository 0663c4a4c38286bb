"""
Pydantic models for the art registry API surface.

Error body contract for the image proxy:
{
  "error": "INVALID_IMAGE_PREFIX",
  "message": "string",
  "details": {},
  "show_details": false
}
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Structured error returned by the image proxy."""
    error: str = Field(..., description="Machine-readable ErrorKind")
    message: str = Field(..., description="Human-readable message")
    details: dict[str, Any] = Field(default_factory=dict)
    show_details: bool = Field(False, description="Whether clients should surface details")


class StageFailure(BaseModel):
    """Failed records sharing one (stage, reason) pair."""
    stage: str
    reason: str
    count: int = Field(..., ge=0)
    external_ids: list[str] = Field(default_factory=list)


class BatchSummaryResponse(BaseModel):
    """Serializable form of an import batch summary."""
    source_kind: str
    dry_run: bool = False
    total: int = Field(0, ge=0)
    created: int = Field(0, ge=0)
    updated: int = Field(0, ge=0)
    unchanged: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    skipped: int = Field(0, ge=0)
    filtered: int = Field(0, ge=0)
    media_cached: int = Field(0, ge=0)
    media_failed: int = Field(0, ge=0)
    artists_created: int = Field(0, ge=0)
    failures: list[StageFailure] = Field(default_factory=list)
    skipped_records: list[dict[str, str]] = Field(default_factory=list)
    media_failures: list[dict[str, str]] = Field(default_factory=list)
    duration_seconds: Optional[float] = None
