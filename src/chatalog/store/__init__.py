"""SQLite-backed persistence for subjects, topics, notes and import batches."""

from .db import DuplicateKeyError
from .repositories import (
    ImportBatchRepository,
    NoteRepository,
    SqliteImportBatchRepository,
    SqliteNoteRepository,
    SqliteSubjectRepository,
    SqliteTopicRepository,
    Store,
    SubjectRepository,
    TopicRepository,
)

__all__ = [
    "DuplicateKeyError",
    "Store",
    "SubjectRepository",
    "TopicRepository",
    "NoteRepository",
    "ImportBatchRepository",
    "SqliteSubjectRepository",
    "SqliteTopicRepository",
    "SqliteNoteRepository",
    "SqliteImportBatchRepository",
]
