"""Per-conversation import coverage computed from the persisted notes."""

import json
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from .models.coverage import CoverageReport, CoverageStatus, CoverageSummary
from .models.store import Note
from .store.repositories import NoteRepository

logger = logging.getLogger(__name__)


def normalize_index_base(indexes: Iterable[int]) -> set[int]:
    """Shift indexes to 0-based when the smallest one is 1.

    Notes may carry 1-based or 0-based turn indexes depending on how they were
    imported; a minimum of exactly 1 is taken to mean 1-based.
    """
    values = set(indexes)
    if values and min(values) == 1:
        return {i - 1 for i in values}
    return values


def estimate_total_turns(notes: list[Note], imported: list[int]) -> Optional[int]:
    """Total turns for a conversation.

    One distinct recorded total is used as is; conflicting totals resolve to
    the largest. With no recorded total, fall back to max index + 1.
    """
    totals = {n.chatworthy_total_turns for n in notes if n.chatworthy_total_turns is not None}
    if totals:
        return max(totals)
    if imported:
        return imported[-1] + 1
    return None


def classify(imported: list[int], total_turns: Optional[int]) -> tuple[list[int], CoverageStatus]:
    """Missing 0-based indexes and status for one conversation."""
    if total_turns is None or total_turns < 0:
        return [], "unknown"

    present = normalize_index_base(imported)
    missing = [i for i in range(total_turns) if i not in present]
    if not missing:
        return missing, "complete"
    if len(missing) == total_turns:
        return missing, "unknown"
    return missing, "partial"


def _first_seen(values: Iterable[Optional[str]]) -> list[str]:
    return list(OrderedDict.fromkeys(v for v in values if v))


def summarize_conversation(key: str, notes: list[Note]) -> CoverageSummary:
    imported = sorted({n.chatworthy_turn_index for n in notes if n.chatworthy_turn_index is not None})
    total_turns = estimate_total_turns(notes, imported)
    missing, status = classify(imported, total_turns)
    titles = _first_seen(n.chatworthy_chat_title for n in notes)

    return CoverageSummary(
        conversation_key=key,
        chat_title=titles[0] if titles else None,
        title_candidates=titles,
        file_names=_first_seen(n.chatworthy_file_name for n in notes),
        imported_turn_indexes=imported,
        missing_turn_indexes=missing,
        imported_turn_count=len(imported),
        total_turns=total_turns,
        status=status,
    )


def compute_coverage(notes: Iterable[Note]) -> list[CoverageSummary]:
    """Group notes by conversation (chat id, else file name) and summarize each.

    Notes with neither identifier are ignored. Summaries are ordered by key.
    """
    groups: dict[str, list[Note]] = {}
    for note in notes:
        key = note.conversation_key()
        if not key:
            continue
        groups.setdefault(key, []).append(note)

    return [summarize_conversation(key, groups[key]) for key in sorted(groups)]


def build_coverage_report(notes: NoteRepository) -> CoverageReport:
    chats = compute_coverage(notes.list_with_chat_provenance())
    report = CoverageReport(
        generated_at=datetime.now(timezone.utc).isoformat(),
        chat_count=len(chats),
        chats=chats,
    )
    counts = {s: sum(1 for c in chats if c.status == s) for s in ("complete", "partial", "unknown")}
    logger.info(f"Coverage over {len(chats)} conversation(s): {counts}")
    return report


def write_report(report: BaseModel, output_path: Path) -> Path:
    """Write a report model as camelCase JSON via a temp file and rename."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = output_path.with_suffix(output_path.suffix + ".tmp")
    tmp_path.write_text(
        json.dumps(report.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    tmp_path.replace(output_path)
    return output_path


def render_coverage_table(report: CoverageReport, console: Console) -> None:
    """Print one row per conversation."""
    table = Table(title=f"Chatworthy Import Coverage ({report.chat_count} chat(s))")
    table.add_column("Chat", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Files", style="dim")
    table.add_column("Imported", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    table.add_column("Missing", style="yellow")

    status_style = {"complete": "green", "partial": "yellow", "unknown": "red"}
    for chat in report.chats:
        style = status_style[chat.status]
        table.add_row(
            chat.conversation_key,
            chat.chat_title or "",
            ", ".join(chat.file_names),
            str(chat.imported_turn_count),
            str(chat.total_turns) if chat.total_turns is not None else "unknown",
            f"[{style}]{chat.status}[/{style}]",
            ",".join(str(i) for i in chat.missing_turn_indexes),
        )

    console.print(table)
