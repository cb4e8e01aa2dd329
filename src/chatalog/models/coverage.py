"""Pydantic models for coverage and export-file audit reports."""

from typing import Literal, Optional

from pydantic import Field

from .store import CamelModel

CoverageStatus = Literal["complete", "partial", "unknown"]
FileImportStatus = Literal["none", "partial", "complete", "unknown"]


class CoverageSummary(CamelModel):
    """Import completeness for one conversation."""

    conversation_key: str
    chat_title: Optional[str] = None
    title_candidates: list[str] = Field(default_factory=list)
    file_names: list[str] = Field(default_factory=list)
    imported_turn_indexes: list[int] = Field(default_factory=list)
    missing_turn_indexes: list[int] = Field(default_factory=list)
    imported_turn_count: int = 0
    total_turns: Optional[int] = None
    status: CoverageStatus = "unknown"


class CoverageReport(CamelModel):
    """Point-in-time coverage snapshot across all conversations."""

    generated_at: str
    chat_count: int
    chats: list[CoverageSummary] = Field(default_factory=list)


class MissingTurnSnippet(CamelModel):
    turn_index: int
    snippet: str


class FileStatus(CamelModel):
    """Import status of one exported Markdown file."""

    file_path: str
    file_name: str
    conversation_key: Optional[str] = None
    chat_title: Optional[str] = None
    turns_in_file: int
    imported_turn_indexes: list[int] = Field(default_factory=list)
    missing_turn_indexes: list[int] = Field(default_factory=list)
    imported_turn_count: int = 0
    status: FileImportStatus = "unknown"
    missing_turn_snippets: list[MissingTurnSnippet] = Field(default_factory=list)


class FileStatusReport(CamelModel):
    generated_at: str
    root_dir: str
    file_count: int
    files: list[FileStatus] = Field(default_factory=list)
