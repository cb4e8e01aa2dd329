"""Append-only JSONL ledger of import operations, keyed by import batch."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console

from .models.imports import ApplyResult
from .models.ledger import LedgerEvent, LedgerEventType

console = Console()


class LedgerWriter:
    """Appends events to <home>/system/ledger.jsonl.

    Events that change the store carry the import batch they belong to, so a
    batch's history can be read back with ``read_batch_history``.
    """

    def __init__(self, ledger_path: Path, run_id: Optional[str] = None):
        self.ledger_path = ledger_path
        self.run_id = run_id or str(uuid.uuid4())

    def append_event(
        self,
        event_type: LedgerEventType,
        payload: dict,
        import_batch_id: Optional[str] = None,
    ) -> LedgerEvent:
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)

        event = LedgerEvent(
            event_id=str(uuid.uuid4()),
            run_id=self.run_id,
            ts=datetime.now(timezone.utc),
            event_type=event_type,
            import_batch_id=import_batch_id,
            payload=payload,
        )

        with open(self.ledger_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event.model_dump(mode="json")) + "\n")

        return event

    def record_apply(self, result: ApplyResult, rows_file: Optional[str] = None) -> LedgerEvent:
        """IMPORT_APPLIED for one apply run.

        Failed rows are logged by import key even when no batch was created.
        """
        return self.append_event(
            event_type="IMPORT_APPLIED",
            payload={
                "rows_file": rows_file,
                "created": result.created,
                "note_ids": result.note_ids,
                "failed": [f.import_key for f in result.failed],
                "cleanup_needed": [c.existing_note_id for c in result.cleanup_needed],
            },
            import_batch_id=result.import_batch_id,
        )

    def record_batch_deleted(self, batch_id: str, notes_kept: int) -> LedgerEvent:
        return self.append_event(
            event_type="IMPORT_BATCH_DELETED",
            payload={"notes_kept": notes_kept},
            import_batch_id=batch_id,
        )


def _parse_lines(lines: Iterable[str]) -> list[LedgerEvent]:
    """Parse JSONL lines, skipping malformed ones with a warning."""
    events: list[LedgerEvent] = []
    malformed_count = 0

    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            events.append(LedgerEvent(**json.loads(line)))
        except (json.JSONDecodeError, ValueError) as e:
            malformed_count += 1
            console.print(f"[yellow]Warning: Skipping malformed line: {e}[/yellow]")

    if malformed_count > 0:
        console.print(f"[yellow]Skipped {malformed_count} malformed line(s)[/yellow]")
    return events


def _read_lines(ledger_path: Path) -> list[str]:
    if not ledger_path.exists():
        return []
    with open(ledger_path, "r", encoding="utf-8") as f:
        return f.readlines()


def read_ledger_tail(ledger_path: Path, n: int = 20) -> list[LedgerEvent]:
    """The last ``n`` lines of the ledger as events."""
    lines = _read_lines(ledger_path)
    return _parse_lines(lines[-n:] if n > 0 else [])


def read_batch_history(ledger_path: Path, import_batch_id: str) -> list[LedgerEvent]:
    """Every event of one import batch, oldest first.

    Matches a unique prefix of the id as well, since tables show ids shortened.
    """
    events = [
        e
        for e in _parse_lines(_read_lines(ledger_path))
        if e.import_batch_id and e.import_batch_id.startswith(import_batch_id)
    ]
    if len({e.import_batch_id for e in events}) > 1:
        return [e for e in events if e.import_batch_id == import_batch_id]
    return events
