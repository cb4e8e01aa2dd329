from __future__ import annotations

import sqlite3
from pathlib import Path


class DuplicateKeyError(Exception):
    """An insert violated one of the store's uniqueness indexes."""

    def __init__(self, table: str, fields: dict, detail: str = ""):
        self.table = table
        self.fields = fields
        self.detail = detail
        super().__init__(f"Duplicate key in {table}: {fields} ({detail})")


def connect(db_path: Path | str) -> sqlite3.Connection:
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS subjects(
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          slug TEXT,
          created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS topics(
          id TEXT PRIMARY KEY,
          subject_id TEXT NOT NULL,
          name TEXT NOT NULL,
          slug TEXT,
          created_at TEXT NOT NULL,
          FOREIGN KEY(subject_id) REFERENCES subjects(id)
        );

        CREATE TABLE IF NOT EXISTS notes(
          id TEXT PRIMARY KEY,
          subject_id TEXT,
          topic_id TEXT,
          title TEXT NOT NULL,
          slug TEXT NOT NULL,
          markdown TEXT NOT NULL,
          summary TEXT,
          tags_json TEXT NOT NULL,
          sources_json TEXT NOT NULL,
          chatworthy_note_id TEXT,
          chatworthy_chat_id TEXT,
          chatworthy_chat_title TEXT,
          chatworthy_file_name TEXT,
          chatworthy_turn_index INTEGER,
          chatworthy_total_turns INTEGER,
          import_batch_id TEXT,
          created_at TEXT NOT NULL,
          FOREIGN KEY(subject_id) REFERENCES subjects(id),
          FOREIGN KEY(topic_id) REFERENCES topics(id)
        );

        -- No foreign key on notes.import_batch_id: deleting a batch keeps its notes.
        CREATE TABLE IF NOT EXISTS import_batches(
          id TEXT PRIMARY KEY,
          created_at TEXT NOT NULL,
          imported_count INTEGER NOT NULL,
          remaining_count INTEGER NOT NULL,
          source_type TEXT
        );

        CREATE UNIQUE INDEX IF NOT EXISTS ux_subjects_name ON subjects(name);
        CREATE UNIQUE INDEX IF NOT EXISTS ux_subjects_slug ON subjects(slug) WHERE slug IS NOT NULL;
        CREATE UNIQUE INDEX IF NOT EXISTS ux_topics_subject_name ON topics(subject_id, name);
        CREATE UNIQUE INDEX IF NOT EXISTS ux_topics_subject_slug ON topics(subject_id, slug) WHERE slug IS NOT NULL;
        CREATE UNIQUE INDEX IF NOT EXISTS ux_notes_topic_slug ON notes(COALESCE(topic_id, ''), slug);

        CREATE INDEX IF NOT EXISTS idx_notes_chat_id ON notes(chatworthy_chat_id);
        CREATE INDEX IF NOT EXISTS idx_notes_file_name ON notes(chatworthy_file_name);
        CREATE INDEX IF NOT EXISTS idx_notes_import_batch_id ON notes(import_batch_id);
        """
    )


def is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(exc)
