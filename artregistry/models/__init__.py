from .enums import (
    SourceKind,
    RecordState,
    ImportStage,
    PersistOutcome,
    MediaFetchReason,
    ImageSize,
    CacheNamespace,
    ImportRunStatus,
)
from .response import (
    ErrorResponse,
    StageFailure,
    BatchSummaryResponse,
)

__all__ = [
    "SourceKind",
    "RecordState",
    "ImportStage",
    "PersistOutcome",
    "MediaFetchReason",
    "ImageSize",
    "CacheNamespace",
    "ImportRunStatus",
    "ErrorResponse",
    "StageFailure",
    "BatchSummaryResponse",
]
