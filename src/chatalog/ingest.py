"""Apply reviewed preview rows: resolve hierarchy, create notes, record the batch."""

import logging
import re
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from .batches import ImportBatchRecorder
from .chatworthy.preview import ImportInputError
from .chatworthy.turns import count_anchors
from .hierarchy import HierarchyResolver
from .models.imports import ApplyResult, CleanupItem, EditedRow, RowFailure
from .models.store import ChatProvenance, Note, NoteDraft, NoteSource
from .slugs import SlugAllocator, SlugConflictError
from .store.repositories import (
    ImportBatchRepository,
    NoteRepository,
    SubjectRepository,
    TopicRepository,
)

logger = logging.getLogger(__name__)

_PROMPT_LABEL_RE = re.compile(r"^[ \t]*(?:>[ \t]*)?\*\*Prompt\*\*", re.MULTILINE)


def count_turn_markers(markdown: str) -> int:
    """Turns a note body appears to hold, judged by anchors or Prompt labels."""
    return max(count_anchors(markdown), len(_PROMPT_LABEL_RE.findall(markdown)))


def validate_rows(rows: Iterable[Union[EditedRow, dict[str, Any]]]) -> list[EditedRow]:
    """Validate every row before anything is written.

    Raises:
        ImportInputError: No rows, or a row failing validation (names its
            import key or position)
    """
    validated: list[EditedRow] = []
    for i, row in enumerate(rows):
        if isinstance(row, EditedRow):
            validated.append(row)
            continue
        try:
            validated.append(EditedRow.model_validate(row))
        except ValidationError as e:
            key = row.get("importKey") if isinstance(row, dict) else None
            where = f"row {key}" if key else f"row #{i + 1}"
            raise ImportInputError(f"Invalid {where}: {e}") from e
    if not validated:
        raise ImportInputError("No rows to apply")
    return validated


class NoteIngestionEngine:
    """Turns edited rows into notes, strictly one row at a time.

    A later row may name a subject or topic an earlier row just created, so
    rows are never processed concurrently.
    """

    def __init__(
        self,
        subjects: SubjectRepository,
        topics: TopicRepository,
        notes: NoteRepository,
        batches: ImportBatchRepository,
        allocator: Optional[SlugAllocator] = None,
        source_type: str = "chatworthy",
    ):
        self.subjects = subjects
        self.topics = topics
        self.notes = notes
        self.allocator = allocator or SlugAllocator()
        self.resolver = HierarchyResolver(subjects, topics, self.allocator)
        self.recorder = ImportBatchRecorder(batches, notes)
        self.source_type = source_type

    @classmethod
    def from_store(cls, store, allocator: Optional[SlugAllocator] = None, source_type: str = "chatworthy"):
        return cls(store.subjects, store.topics, store.notes, store.batches, allocator, source_type)

    def apply_row(self, row: EditedRow) -> Note:
        """Resolve labels, allocate a slug in the topic's scope and persist the note."""
        subject, topic = self.resolver.resolve(row.subject_label, row.topic_label)
        topic_id = topic.id if topic else None
        title = row.title.strip() or "Untitled"

        provenance = row.model_dump(include=set(ChatProvenance.model_fields))

        def create(slug: str) -> Note:
            return self.notes.create(
                NoteDraft(
                    subject_id=subject.id if subject else None,
                    topic_id=topic_id,
                    title=title,
                    slug=slug,
                    markdown=row.body,
                    summary=row.summary,
                    tags=list(row.tags),
                    sources=[NoteSource(type="chatworthy", url=row.provenance_url)],
                    **provenance,
                )
            )

        note = self.allocator.create_unique(
            self.allocator.base_slug(title),
            lambda slug: self.notes.slug_exists(topic_id, slug),
            create,
            scope=f"notes of topic '{topic.name}'" if topic else "unfiled notes",
        )
        logger.debug(
            f"{row.import_key}: note {note.id} '{note.slug}' "
            f"subject={subject.name if subject else '-'} topic={topic.name if topic else '-'}"
        )
        return note

    def apply(self, rows: Iterable[Union[EditedRow, dict[str, Any]]]) -> ApplyResult:
        """Apply edited rows in order and record one batch for the created notes.

        A row whose slug cannot be allocated is reported in ``failed`` and the
        remaining rows continue; any other error aborts the apply.
        """
        edited = validate_rows(rows)

        created: list[Note] = []
        failed: list[RowFailure] = []
        for row in edited:
            try:
                created.append(self.apply_row(row))
            except SlugConflictError as e:
                logger.warning(f"{row.import_key}: {e}")
                failed.append(RowFailure(import_key=row.import_key, error=str(e)))

        note_ids = [n.id for n in created]
        batch = self.recorder.record(note_ids, self.source_type)
        cleanup = self.find_cleanup_needed(edited, set(note_ids))

        logger.info(
            f"Applied {len(edited)} row(s): {len(created)} created, {len(failed)} failed, "
            f"{len(cleanup)} note(s) flagged for cleanup"
        )
        return ApplyResult(
            created=len(created),
            note_ids=note_ids,
            import_batch_id=batch.id if batch else None,
            cleanup_needed=cleanup,
            failed=failed,
        )

    def find_cleanup_needed(self, rows: list[EditedRow], exclude_ids: set[str]) -> list[CleanupItem]:
        """Existing notes of the same conversations that seem to merge several turns."""
        keys = {row.conversation_key() for row in rows} - {None}
        if not keys:
            return []

        chat_ids = [r.chatworthy_chat_id for r in rows if r.chatworthy_chat_id]
        file_names = [r.chatworthy_file_name for r in rows if r.chatworthy_file_name and not r.chatworthy_chat_id]

        items: list[CleanupItem] = []
        for note in self.notes.find_by_conversation(chat_ids, file_names):
            if note.id in exclude_ids or note.conversation_key() not in keys:
                continue
            if count_turn_markers(note.markdown) < 2:
                continue
            subject = self.subjects.get(note.subject_id) if note.subject_id else None
            topic = self.topics.get(note.topic_id) if note.topic_id else None
            items.append(
                CleanupItem(
                    existing_note_id=note.id,
                    existing_note_title=note.title,
                    existing_subject_name=subject.name if subject else None,
                    existing_topic_name=topic.name if topic else None,
                )
            )
        return items
