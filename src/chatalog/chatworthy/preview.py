"""Turn an uploaded Chatworthy export (.md or .zip) into preview rows.

Preview performs no writes. When repositories are supplied it also reads the
store to flag rows whose turn is already imported.
"""

import io
import logging
import re
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional

from ..models.imports import PreviewResult, PreviewRow, TurnConflict
from ..store.repositories import NoteRepository, SubjectRepository, TopicRepository
from .frontmatter import FrontMatter, parse_front_matter
from .stripper import StripOptions, strip_boilerplate
from .turns import split_turns

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")
ZIP_SUFFIX = ".zip"

_H1_RE = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)
_SECTION_HEADING_RE = re.compile(r"^\s*#{2,6}\s+(.+?)\s*$", re.MULTILINE)
_MD_EXT_RE = re.compile(r"\.(md|markdown)$", re.IGNORECASE)


class ImportInputError(Exception):
    """Client-input error raised before any parsing or writing."""

    pass


def _decode(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    return text[1:] if text.startswith("\ufeff") else text


def _base_title(fm: FrontMatter, body: str, file_name: str) -> str:
    if fm.title:
        return fm.title
    if fm.chat_title:
        return fm.chat_title
    m = _H1_RE.search(body)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return _MD_EXT_RE.sub("", PurePosixPath(file_name).name)


def _row(
    fm: FrontMatter,
    file_name: str,
    row_index: int,
    title: str,
    body: str,
    turn_index: int,
    total_turns: int,
) -> PreviewRow:
    return PreviewRow(
        file=file_name,
        import_key=f"{file_name}::{row_index}",
        title=title,
        subject_name=fm.subject,
        topic_name=fm.topic,
        body=body,
        tags=list(fm.tags),
        summary=fm.summary,
        provenance_url=fm.page_url,
        chatworthy_note_id=fm.note_id,
        chatworthy_chat_id=fm.chat_id,
        chatworthy_chat_title=fm.chat_title,
        chatworthy_file_name=file_name,
        chatworthy_turn_index=turn_index,
        chatworthy_total_turns=total_turns,
    )


def parse_markdown_file(data: bytes, file_name: str) -> tuple[list[PreviewRow], list[str]]:
    """Parse one exported Markdown file into preview rows.

    Args:
        data: Raw file bytes (UTF-8)
        file_name: Name used for provenance and import keys

    Returns:
        Tuple of (rows, errors). Errors describe degradations such as
        malformed front matter; they never prevent rows from being produced.
    """
    errors: list[str] = []
    fm, body = parse_front_matter(_decode(data))
    if fm.error:
        errors.append(f"{file_name}: {fm.error}")

    opts = StripOptions(subject=fm.subject, topic=fm.topic, chat_title=fm.chat_title, fm_title=fm.title)
    split = split_turns(body)

    def whole_document_row() -> PreviewRow:
        markdown = strip_boilerplate(body, opts).strip()
        return _row(fm, file_name, 0, _base_title(fm, body, file_name), markdown, 1, 1)

    if not split.anchored:
        return [whole_document_row()], errors

    kept: list[tuple[int, str, str]] = []
    for section in split.sections:
        cleaned = strip_boilerplate(section.markdown, opts).strip()
        if not cleaned:
            logger.debug(f"{file_name}: turn {section.turn_index} is empty after stripping, skipped")
            continue
        heading = _SECTION_HEADING_RE.search(cleaned)
        title = heading.group(1).strip() if heading and heading.group(1).strip() else f"Turn {section.turn_index}"
        kept.append((section.turn_index, title, cleaned))

    if not kept:
        logger.warning(f"{file_name}: every turn stripped to empty, importing whole document")
        return [whole_document_row()], errors

    # Survivor count, while turn indexes keep their document positions.
    total_turns = len(kept)
    rows = [
        _row(fm, file_name, i, title, cleaned, turn_index, total_turns)
        for i, (turn_index, title, cleaned) in enumerate(kept)
    ]
    return rows, errors


def parse_zip_archive(data: bytes, archive_name: str) -> tuple[list[PreviewRow], list[str]]:
    """Parse every ``.md`` entry of a zip archive; other entries are skipped."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ImportInputError(f"{archive_name}: not a valid zip archive ({e})") from e

    rows: list[PreviewRow] = []
    errors: list[str] = []
    with archive:
        for info in archive.infolist():
            if info.is_dir() or not info.filename.lower().endswith(".md"):
                continue
            try:
                entry_data = archive.read(info)
            except (zipfile.BadZipFile, OSError, NotImplementedError) as e:
                errors.append(f"{info.filename}: unreadable zip entry ({e})")
                logger.warning(f"Skipping unreadable entry {info.filename} in {archive_name}: {e}")
                continue
            entry_rows, entry_errors = parse_markdown_file(entry_data, info.filename)
            rows.extend(entry_rows)
            errors.extend(entry_errors)
    return rows, errors


def find_turn_conflicts(
    rows: list[PreviewRow],
    notes: NoteRepository,
    subjects: Optional[SubjectRepository] = None,
    topics: Optional[TopicRepository] = None,
) -> list[TurnConflict]:
    """Flag rows whose (chat id, turn index) already exists on a stored note."""
    conflicts: list[TurnConflict] = []
    for row in rows:
        if not row.chatworthy_chat_id or row.chatworthy_turn_index is None:
            continue
        existing = notes.find_by_chat_turn(row.chatworthy_chat_id, row.chatworthy_turn_index)
        if existing is None:
            continue
        subject = subjects.get(existing.subject_id) if subjects and existing.subject_id else None
        topic = topics.get(existing.topic_id) if topics and existing.topic_id else None
        conflicts.append(
            TurnConflict(
                import_key=row.import_key,
                turn_index=row.chatworthy_turn_index,
                existing_note_id=existing.id,
                existing_note_title=existing.title,
                existing_subject_name=subject.name if subject else None,
                existing_topic_name=topic.name if topic else None,
            )
        )
    return conflicts


def preview_upload(
    file_name: Optional[str],
    data: Optional[bytes],
    notes: Optional[NoteRepository] = None,
    subjects: Optional[SubjectRepository] = None,
    topics: Optional[TopicRepository] = None,
) -> PreviewResult:
    """Build the preview for one uploaded file.

    Raises:
        ImportInputError: Missing upload, unsupported extension or bad zip
    """
    if not file_name or data is None:
        raise ImportInputError("No file uploaded")

    lower = file_name.lower()
    if lower.endswith(ZIP_SUFFIX):
        rows, errors = parse_zip_archive(data, file_name)
    elif lower.endswith(MARKDOWN_SUFFIXES):
        rows, errors = parse_markdown_file(data, file_name)
    else:
        raise ImportInputError(f"Unsupported file type for {file_name}. Use .md or .zip.")

    conflicts = find_turn_conflicts(rows, notes, subjects, topics) if notes is not None else []
    logger.info(f"Previewed {file_name}: {len(rows)} row(s), {len(conflicts)} turn conflict(s)")

    return PreviewResult(imported=len(rows), results=rows, turn_conflicts=conflicts, errors=errors)


def preview_path(
    path: Path,
    notes: Optional[NoteRepository] = None,
    subjects: Optional[SubjectRepository] = None,
    topics: Optional[TopicRepository] = None,
) -> PreviewResult:
    """Preview a file on disk."""
    if not path.exists() or not path.is_file():
        raise ImportInputError(f"File not found: {path}")
    return preview_upload(path.name, path.read_bytes(), notes, subjects, topics)
