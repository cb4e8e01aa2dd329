"""Pydantic models for Chatalog."""

from .coverage import (
    CoverageReport,
    CoverageStatus,
    CoverageSummary,
    FileImportStatus,
    FileStatus,
    FileStatusReport,
    MissingTurnSnippet,
)
from .imports import (
    ApplyResult,
    CleanupItem,
    EditedRow,
    PreviewResult,
    PreviewRow,
    RowFailure,
    TurnConflict,
)
from .ledger import LedgerEvent
from .store import (
    ChatProvenance,
    ImportBatch,
    Note,
    NoteDraft,
    NoteSource,
    Subject,
    Topic,
)

__all__ = [
    "LedgerEvent",
    # Store records
    "Subject",
    "Topic",
    "Note",
    "NoteDraft",
    "NoteSource",
    "ChatProvenance",
    "ImportBatch",
    # Import workflow
    "PreviewRow",
    "PreviewResult",
    "EditedRow",
    "ApplyResult",
    "TurnConflict",
    "CleanupItem",
    "RowFailure",
    # Reports
    "CoverageStatus",
    "CoverageSummary",
    "CoverageReport",
    "FileImportStatus",
    "FileStatus",
    "FileStatusReport",
    "MissingTurnSnippet",
]
