"""Audit a directory of exported Markdown files against the note store.

Read-only with respect to the store. For each ``.md`` file it reports which
turns already exist as notes, matched by the conversation key from front
matter or by the file's base name.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .chatworthy.frontmatter import parse_front_matter
from .chatworthy.turns import ANCHOR_RE, count_turns, split_turns
from .coverage import normalize_index_base
from .models.coverage import FileImportStatus, FileStatus, FileStatusReport, MissingTurnSnippet
from .models.store import Note
from .store.repositories import NoteRepository

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 120

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ScannedFile:
    path: Path
    file_name: str
    conversation_key: Optional[str]
    chat_title: Optional[str]
    turns_in_file: int
    body: str


def collect_markdown_files(root: Path) -> list[Path]:
    """All ``.md`` files under ``root``, recursively, in path order."""
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() == ".md")


def scan_file(path: Path) -> ScannedFile:
    fm, body = parse_front_matter(path.read_text(encoding="utf-8", errors="replace"))
    if fm.error:
        logger.warning(f"{path}: {fm.error}")
    return ScannedFile(
        path=path,
        file_name=path.name,
        conversation_key=fm.chat_id or fm.note_id,
        chat_title=fm.chat_title,
        turns_in_file=count_turns(body),
        body=body,
    )


def _snippet(text: str, max_len: int = SNIPPET_LENGTH) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()[:max_len]


def missing_turn_snippets(scanned: ScannedFile, missing: list[int]) -> list[MissingTurnSnippet]:
    """Leading text of each missing turn; indexes are 0-based positions."""
    split = split_turns(scanned.body)
    snippets: list[MissingTurnSnippet] = []
    for idx in missing:
        if not 0 <= idx < len(split.sections):
            continue
        text = split.sections[idx].markdown
        if split.anchored:
            text = ANCHOR_RE.sub("", text, count=1)
        snippet = _snippet(text)
        if snippet:
            snippets.append(MissingTurnSnippet(turn_index=idx, snippet=snippet))
    return snippets


def _index_notes(notes: list[Note]) -> tuple[dict[str, set[int]], dict[str, set[int]]]:
    by_chat: dict[str, set[int]] = {}
    by_file: dict[str, set[int]] = {}
    for note in notes:
        if note.chatworthy_turn_index is None:
            continue
        if note.chatworthy_chat_id:
            by_chat.setdefault(note.chatworthy_chat_id, set()).add(note.chatworthy_turn_index)
        if note.chatworthy_file_name:
            by_file.setdefault(note.chatworthy_file_name, set()).add(note.chatworthy_turn_index)
    return by_chat, by_file


def file_status(
    scanned: ScannedFile,
    by_chat: dict[str, set[int]],
    by_file: dict[str, set[int]],
) -> FileStatus:
    from_chat = by_chat.get(scanned.conversation_key, set()) if scanned.conversation_key else set()
    from_file = by_file.get(scanned.file_name, set())
    imported = sorted(from_chat | from_file)

    base = FileStatus(
        file_path=str(scanned.path),
        file_name=scanned.file_name,
        conversation_key=scanned.conversation_key,
        chat_title=scanned.chat_title,
        turns_in_file=scanned.turns_in_file,
    )
    if not scanned.conversation_key and not imported:
        return base

    status: FileImportStatus
    if not imported:
        status = "none"
        missing = list(range(scanned.turns_in_file))
    else:
        present = normalize_index_base(imported)
        missing = [i for i in range(scanned.turns_in_file) if i not in present]
        if not missing:
            status = "complete"
        elif len(missing) == scanned.turns_in_file:
            status = "unknown"
        else:
            status = "partial"

    snippets = missing_turn_snippets(scanned, missing) if status in ("none", "partial") else []
    return base.model_copy(
        update={
            "imported_turn_indexes": imported,
            "missing_turn_indexes": missing,
            "imported_turn_count": len(imported),
            "status": status,
            "missing_turn_snippets": snippets,
        }
    )


def audit_directory(root: Path, notes: NoteRepository) -> FileStatusReport:
    """Compare every exported file under ``root`` with the stored notes.

    Raises:
        NotADirectoryError: ``root`` is not a directory
    """
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    scanned = [scan_file(p) for p in collect_markdown_files(root)]
    chat_keys = [s.conversation_key for s in scanned if s.conversation_key]
    file_names = [s.file_name for s in scanned]

    matched = notes.find_by_conversation(chat_keys, file_names) if scanned else []
    logger.info(f"Audit of {root}: {len(scanned)} file(s), {len(matched)} matching note(s)")

    by_chat, by_file = _index_notes(matched)
    files = [file_status(s, by_chat, by_file) for s in scanned]
    return FileStatusReport(
        generated_at=datetime.now(timezone.utc).isoformat(),
        root_dir=str(root),
        file_count=len(files),
        files=files,
    )


def brief_lines(report: FileStatusReport) -> list[str]:
    """Only files with status none or partial; partial files list missing turns."""
    interesting = [f for f in report.files if f.status in ("none", "partial")]
    if not interesting:
        return ["All files are fully imported (status=complete)."]

    lines = ["Files with status NONE or PARTIAL:"]
    for f in interesting:
        if f.status == "none":
            lines.append(f"{f.file_name} [NONE]")
            continue
        lines.append("")
        lines.append(f"{f.file_name} [PARTIAL]")
        for m in f.missing_turn_snippets:
            lines.append(f"  - Missing turn {m.turn_index}: {m.snippet}")
    return lines


def render_audit_table(report: FileStatusReport, console: Console) -> None:
    table = Table(title=f"Export Files vs Store ({report.file_count} file(s))")
    table.add_column("File", style="cyan")
    table.add_column("Chat", style="dim")
    table.add_column("Title")
    table.add_column("Turns", justify="right")
    table.add_column("Imported", justify="right")
    table.add_column("Status")
    table.add_column("Missing", style="yellow")

    root = Path(report.root_dir)
    status_style = {"complete": "green", "partial": "yellow", "none": "red", "unknown": "magenta"}
    for f in report.files:
        path = Path(f.file_path)
        shown = path.relative_to(root) if path.is_relative_to(root) else path
        style = status_style[f.status]
        table.add_row(
            str(shown),
            f.conversation_key or "",
            f.chat_title or "",
            str(f.turns_in_file),
            str(f.imported_turn_count),
            f"[{style}]{f.status}[/{style}]",
            ",".join(str(i) for i in f.missing_turn_indexes),
        )

    console.print(table)
