"""Pydantic models for persisted Chatalog records."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose JSON shape uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Subject(CamelModel):
    """Top-level category; name and slug are unique per store."""

    id: str
    name: str
    slug: Optional[str] = None


class Topic(CamelModel):
    """Category nested under exactly one subject."""

    id: str
    subject_id: str
    name: str
    slug: Optional[str] = None


class NoteSource(CamelModel):
    """Provenance entry attached to a note."""

    type: Literal["chatworthy", "clip", "manual", "pdf"] = "chatworthy"
    url: Optional[str] = None


class ChatProvenance(CamelModel):
    """Conversation provenance carried from an export file onto a note."""

    chatworthy_note_id: Optional[str] = None
    chatworthy_chat_id: Optional[str] = None
    chatworthy_chat_title: Optional[str] = None
    chatworthy_file_name: Optional[str] = None
    chatworthy_turn_index: Optional[int] = None
    chatworthy_total_turns: Optional[int] = None

    def conversation_key(self) -> Optional[str]:
        """Chat id when present, else the source file name."""
        return self.chatworthy_chat_id or self.chatworthy_file_name or None


class NoteDraft(ChatProvenance):
    """Fields of a note before the store assigns id and timestamps."""

    subject_id: Optional[str] = None
    topic_id: Optional[str] = None
    title: str = "Untitled"
    slug: str
    markdown: str = ""
    summary: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    sources: list[NoteSource] = Field(default_factory=list)


class Note(NoteDraft):
    """Atomic unit of imported content."""

    id: str
    import_batch_id: Optional[str] = None
    created_at: str


class ImportBatch(CamelModel):
    """Audit record of one apply operation. Deleting it never deletes notes."""

    id: str
    created_at: str
    imported_count: int
    remaining_count: int
    source_type: Optional[str] = None
