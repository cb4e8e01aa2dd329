"""Repository interfaces and their SQLite implementations.

Components receive repositories explicitly; tests can swap any of them for a
fake implementing the same protocol.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Protocol

from ..models.store import ImportBatch, Note, NoteDraft, NoteSource, Subject, Topic
from . import db as dbmod
from .db import DuplicateKeyError


def _iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _new_id() -> str:
    return uuid.uuid4().hex


class SubjectRepository(Protocol):
    def get(self, subject_id: str) -> Optional[Subject]: ...

    def find_by_name(self, name: str) -> Optional[Subject]: ...

    def slug_exists(self, slug: str) -> bool: ...

    def create(self, name: str, slug: str) -> Subject: ...


class TopicRepository(Protocol):
    def get(self, topic_id: str) -> Optional[Topic]: ...

    def find_by_name(self, subject_id: str, name: str) -> Optional[Topic]: ...

    def slug_exists(self, subject_id: str, slug: str) -> bool: ...

    def create(self, subject_id: str, name: str, slug: str) -> Topic: ...


class NoteRepository(Protocol):
    def get(self, note_id: str) -> Optional[Note]: ...

    def slug_exists(self, topic_id: Optional[str], slug: str) -> bool: ...

    def create(self, draft: NoteDraft) -> Note: ...

    def set_import_batch(self, note_ids: list[str], batch_id: str) -> int: ...

    def list_by_batch(self, batch_id: str) -> list[Note]: ...

    def list_with_chat_provenance(self) -> list[Note]: ...

    def find_by_chat_turn(self, chat_id: str, turn_index: int) -> Optional[Note]: ...

    def find_by_conversation(
        self, chat_ids: Iterable[str], file_names: Iterable[str]
    ) -> list[Note]: ...


class ImportBatchRepository(Protocol):
    def get(self, batch_id: str) -> Optional[ImportBatch]: ...

    def create(self, imported_count: int, remaining_count: int, source_type: Optional[str]) -> ImportBatch: ...

    def list_all(self) -> list[ImportBatch]: ...

    def delete(self, batch_id: str) -> bool: ...


def _insert(conn: sqlite3.Connection, table: str, sql: str, params: tuple, fields: dict) -> None:
    try:
        with conn:
            conn.execute(sql, params)
    except sqlite3.IntegrityError as e:
        if dbmod.is_unique_violation(e):
            raise DuplicateKeyError(table, fields, str(e)) from e
        raise


class SqliteSubjectRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, subject_id: str) -> Optional[Subject]:
        row = self.conn.execute("SELECT * FROM subjects WHERE id = ?", (subject_id,)).fetchone()
        return Subject(id=row["id"], name=row["name"], slug=row["slug"]) if row else None

    def find_by_name(self, name: str) -> Optional[Subject]:
        row = self.conn.execute("SELECT * FROM subjects WHERE name = ?", (name,)).fetchone()
        return Subject(id=row["id"], name=row["name"], slug=row["slug"]) if row else None

    def slug_exists(self, slug: str) -> bool:
        row = self.conn.execute("SELECT 1 FROM subjects WHERE slug = ? LIMIT 1", (slug,)).fetchone()
        return row is not None

    def create(self, name: str, slug: str) -> Subject:
        subject = Subject(id=_new_id(), name=name, slug=slug)
        _insert(
            self.conn,
            "subjects",
            "INSERT INTO subjects(id, name, slug, created_at) VALUES(?, ?, ?, ?)",
            (subject.id, name, slug, _iso_utc_now()),
            {"name": name, "slug": slug},
        )
        return subject


class SqliteTopicRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Topic:
        return Topic(id=row["id"], subject_id=row["subject_id"], name=row["name"], slug=row["slug"])

    def get(self, topic_id: str) -> Optional[Topic]:
        row = self.conn.execute("SELECT * FROM topics WHERE id = ?", (topic_id,)).fetchone()
        return self._from_row(row) if row else None

    def find_by_name(self, subject_id: str, name: str) -> Optional[Topic]:
        row = self.conn.execute(
            "SELECT * FROM topics WHERE subject_id = ? AND name = ?", (subject_id, name)
        ).fetchone()
        return self._from_row(row) if row else None

    def slug_exists(self, subject_id: str, slug: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM topics WHERE subject_id = ? AND slug = ? LIMIT 1", (subject_id, slug)
        ).fetchone()
        return row is not None

    def create(self, subject_id: str, name: str, slug: str) -> Topic:
        topic = Topic(id=_new_id(), subject_id=subject_id, name=name, slug=slug)
        _insert(
            self.conn,
            "topics",
            "INSERT INTO topics(id, subject_id, name, slug, created_at) VALUES(?, ?, ?, ?, ?)",
            (topic.id, subject_id, name, slug, _iso_utc_now()),
            {"subject_id": subject_id, "name": name, "slug": slug},
        )
        return topic


_NOTE_COLUMNS = (
    "id, subject_id, topic_id, title, slug, markdown, summary, tags_json, sources_json, "
    "chatworthy_note_id, chatworthy_chat_id, chatworthy_chat_title, chatworthy_file_name, "
    "chatworthy_turn_index, chatworthy_total_turns, import_batch_id, created_at"
)


class SqliteNoteRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            subject_id=row["subject_id"],
            topic_id=row["topic_id"],
            title=row["title"],
            slug=row["slug"],
            markdown=row["markdown"],
            summary=row["summary"],
            tags=json.loads(row["tags_json"]) if row["tags_json"] else [],
            sources=[NoteSource(**s) for s in json.loads(row["sources_json"] or "[]")],
            chatworthy_note_id=row["chatworthy_note_id"],
            chatworthy_chat_id=row["chatworthy_chat_id"],
            chatworthy_chat_title=row["chatworthy_chat_title"],
            chatworthy_file_name=row["chatworthy_file_name"],
            chatworthy_turn_index=row["chatworthy_turn_index"],
            chatworthy_total_turns=row["chatworthy_total_turns"],
            import_batch_id=row["import_batch_id"],
            created_at=row["created_at"],
        )

    def _select(self, where: str, params: tuple = ()) -> list[Note]:
        rows = self.conn.execute(
            f"SELECT {_NOTE_COLUMNS} FROM notes WHERE {where} ORDER BY rowid", params
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def get(self, note_id: str) -> Optional[Note]:
        notes = self._select("id = ?", (note_id,))
        return notes[0] if notes else None

    def slug_exists(self, topic_id: Optional[str], slug: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM notes WHERE COALESCE(topic_id, '') = ? AND slug = ? LIMIT 1",
            (topic_id or "", slug),
        ).fetchone()
        return row is not None

    def create(self, draft: NoteDraft) -> Note:
        note = Note(
            id=_new_id(),
            created_at=_iso_utc_now(),
            **draft.model_dump(include=set(NoteDraft.model_fields)),
        )
        _insert(
            self.conn,
            "notes",
            f"INSERT INTO notes({_NOTE_COLUMNS}) VALUES({', '.join('?' * 17)})",
            (
                note.id,
                note.subject_id,
                note.topic_id,
                note.title,
                note.slug,
                note.markdown,
                note.summary,
                json.dumps(note.tags, ensure_ascii=False),
                json.dumps([s.model_dump(exclude_none=True) for s in note.sources], ensure_ascii=False),
                note.chatworthy_note_id,
                note.chatworthy_chat_id,
                note.chatworthy_chat_title,
                note.chatworthy_file_name,
                note.chatworthy_turn_index,
                note.chatworthy_total_turns,
                note.import_batch_id,
                note.created_at,
            ),
            {"topic_id": note.topic_id, "slug": note.slug},
        )
        return note

    def set_import_batch(self, note_ids: list[str], batch_id: str) -> int:
        if not note_ids:
            return 0
        placeholders = ", ".join("?" * len(note_ids))
        with self.conn:
            cur = self.conn.execute(
                f"UPDATE notes SET import_batch_id = ? WHERE id IN ({placeholders})",
                (batch_id, *note_ids),
            )
        return cur.rowcount

    def list_by_batch(self, batch_id: str) -> list[Note]:
        return self._select("import_batch_id = ?", (batch_id,))

    def list_with_chat_provenance(self) -> list[Note]:
        return self._select("chatworthy_chat_id IS NOT NULL OR chatworthy_file_name IS NOT NULL")

    def find_by_chat_turn(self, chat_id: str, turn_index: int) -> Optional[Note]:
        notes = self._select(
            "chatworthy_chat_id = ? AND chatworthy_turn_index = ?", (chat_id, turn_index)
        )
        return notes[0] if notes else None

    def find_by_conversation(self, chat_ids: Iterable[str], file_names: Iterable[str]) -> list[Note]:
        chat_ids = sorted(set(chat_ids))
        file_names = sorted(set(file_names))
        clauses: list[str] = []
        params: list[str] = []
        if chat_ids:
            clauses.append(f"chatworthy_chat_id IN ({', '.join('?' * len(chat_ids))})")
            params.extend(chat_ids)
        if file_names:
            clauses.append(f"chatworthy_file_name IN ({', '.join('?' * len(file_names))})")
            params.extend(file_names)
        if not clauses:
            return []
        return self._select(" OR ".join(clauses), tuple(params))


class SqliteImportBatchRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @staticmethod
    def _from_row(row: sqlite3.Row) -> ImportBatch:
        return ImportBatch(
            id=row["id"],
            created_at=row["created_at"],
            imported_count=row["imported_count"],
            remaining_count=row["remaining_count"],
            source_type=row["source_type"],
        )

    def get(self, batch_id: str) -> Optional[ImportBatch]:
        row = self.conn.execute("SELECT * FROM import_batches WHERE id = ?", (batch_id,)).fetchone()
        return self._from_row(row) if row else None

    def create(self, imported_count: int, remaining_count: int, source_type: Optional[str]) -> ImportBatch:
        batch = ImportBatch(
            id=_new_id(),
            created_at=_iso_utc_now(),
            imported_count=imported_count,
            remaining_count=remaining_count,
            source_type=source_type,
        )
        _insert(
            self.conn,
            "import_batches",
            "INSERT INTO import_batches(id, created_at, imported_count, remaining_count, source_type) "
            "VALUES(?, ?, ?, ?, ?)",
            (batch.id, batch.created_at, imported_count, remaining_count, source_type),
            {"id": batch.id},
        )
        return batch

    def list_all(self) -> list[ImportBatch]:
        rows = self.conn.execute(
            "SELECT * FROM import_batches ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def delete(self, batch_id: str) -> bool:
        with self.conn:
            cur = self.conn.execute("DELETE FROM import_batches WHERE id = ?", (batch_id,))
        return cur.rowcount > 0


class Store:
    """One SQLite connection plus the four repositories built on it."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.subjects = SqliteSubjectRepository(conn)
        self.topics = SqliteTopicRepository(conn)
        self.notes = SqliteNoteRepository(conn)
        self.batches = SqliteImportBatchRepository(conn)

    @classmethod
    def open(cls, db_path: Path | str) -> "Store":
        conn = dbmod.connect(db_path)
        dbmod.create_schema(conn)
        return cls(conn)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
