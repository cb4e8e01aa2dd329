"""Pydantic models for the preview/apply import workflow."""

from typing import Optional

from pydantic import AliasChoices, Field

from .store import CamelModel, ChatProvenance


class PreviewRow(ChatProvenance):
    """One candidate note produced by parsing; never persisted."""

    file: str
    import_key: str
    title: str
    subject_name: Optional[str] = None
    topic_name: Optional[str] = None
    body: str
    tags: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    provenance_url: Optional[str] = None


class EditedRow(ChatProvenance):
    """A reviewed preview row submitted back for apply.

    Accepts either ``subjectLabel``/``topicLabel`` or the preview's
    ``subjectName``/``topicName`` so exported preview JSON can be applied as is.
    """

    import_key: str = Field(min_length=1)
    file: Optional[str] = None
    title: str = ""
    body: str = ""
    subject_label: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("subjectLabel", "subject_label", "subjectName"),
        serialization_alias="subjectLabel",
    )
    topic_label: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("topicLabel", "topic_label", "topicName"),
        serialization_alias="topicLabel",
    )
    tags: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    provenance_url: Optional[str] = None


class TurnConflict(CamelModel):
    """A preview row whose (chat id, turn index) is already persisted."""

    import_key: str
    turn_index: int
    existing_note_id: str
    existing_note_title: str
    existing_subject_name: Optional[str] = None
    existing_topic_name: Optional[str] = None


class CleanupItem(CamelModel):
    """A pre-existing note that appears to hold several merged turns."""

    existing_note_id: str
    existing_note_title: str
    existing_subject_name: Optional[str] = None
    existing_topic_name: Optional[str] = None


class RowFailure(CamelModel):
    """An apply row that could not be persisted."""

    import_key: str
    error: str


class PreviewResult(CamelModel):
    """Result of parsing one upload for review."""

    imported: int = 0
    results: list[PreviewRow] = Field(default_factory=list)
    turn_conflicts: list[TurnConflict] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ApplyResult(CamelModel):
    """Result of applying edited rows."""

    created: int = 0
    note_ids: list[str] = Field(default_factory=list)
    import_batch_id: Optional[str] = None
    cleanup_needed: list[CleanupItem] = Field(default_factory=list)
    failed: list[RowFailure] = Field(default_factory=list)
