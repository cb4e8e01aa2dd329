"""Typer-based CLI for Chatalog."""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .audit import audit_directory, brief_lines, render_audit_table
from .batches import BatchNotFoundError, ImportBatchRecorder
from .chatworthy.preview import ImportInputError, preview_path
from .config import ChatalogConfig
from .coverage import build_coverage_report, render_coverage_table, write_report
from .ingest import NoteIngestionEngine
from .ledger import LedgerWriter, read_batch_history, read_ledger_tail
from .paths import StorePaths
from .slugs import SlugAllocator
from .store import Store

app = typer.Typer(
    name="chatalog",
    help="Chatalog - import Chatworthy chat exports and reconcile turn coverage",
    add_completion=False,
)

console = Console()


def _home_option():
    return typer.Option(
        None,
        "--home",
        help="Store root directory (default: CHATALOG_HOME env or ./chatalog_data)",
    )


def _db_option():
    return typer.Option(
        None,
        "--db",
        help="SQLite path or sqlite:/// URL (default: CHATALOG_DB env or <home>/state/chatalog.sqlite)",
    )


def _load_config(home: Optional[str], db: Optional[str]) -> tuple[ChatalogConfig, StorePaths]:
    try:
        config = ChatalogConfig.from_env(cli_home=home, cli_db=db)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    return config, StorePaths.from_config(config)


def _short(value: Optional[str], width: int = 8) -> str:
    if not value:
        return "-"
    return value[:width] + "..." if len(value) > width else value


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def init(
    home: str = _home_option(),
    db: str = _db_option(),
):
    """Create the store directories, database schema and ledger.

    Idempotent: existing data is left alone.
    """
    config, paths = _load_config(home, db)

    created = []
    for directory in paths.get_all_directories():
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            created.append(directory)
    if created:
        console.print(f"[green]+[/green] Created {len(created)} directories")
    else:
        console.print("[dim]All directories already exist[/dim]")

    existed = paths.db_file.exists()
    with Store.open(paths.db_file):
        pass
    if existed:
        console.print(f"[dim]Database already exists: {paths.db_file}[/dim]")
    else:
        console.print(f"[green]+[/green] Created database: {paths.db_file}")

    if not paths.ledger_file.exists():
        paths.ledger_file.touch()
        console.print(f"[green]+[/green] Created ledger: {paths.ledger_file}")

    console.print()
    console.print("[bold green]Store initialization complete![/bold green]")
    console.print(f"[dim]Store location:[/dim] {config.home}")


@app.command()
def preview(
    file: Path = typer.Argument(..., help="Chatworthy export (.md, .markdown or .zip)"),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Write the preview JSON here for review and a later 'chatalog apply'",
    ),
    home: str = _home_option(),
    db: str = _db_option(),
):
    """Parse an export into preview rows without writing any notes."""
    config, paths = _load_config(home, db)

    try:
        with Store.open(paths.db_file) as store:
            result = preview_path(file, store.notes, store.subjects, store.topics)
    except ImportInputError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"Preview - {file.name} ({result.imported} row(s))")
    table.add_column("Import Key", style="cyan")
    table.add_column("Turn", justify="right")
    table.add_column("Title")
    table.add_column("Subject / Topic", style="magenta")
    for row in result.results:
        table.add_row(
            row.import_key,
            f"{row.chatworthy_turn_index}/{row.chatworthy_total_turns}",
            row.title,
            " / ".join(x for x in (row.subject_name, row.topic_name) if x) or "-",
        )
    console.print(table)

    for conflict in result.turn_conflicts:
        console.print(
            f"[yellow]! {conflict.import_key}: turn {conflict.turn_index} already imported as "
            f"'{conflict.existing_note_title}'[/yellow]"
        )
    for error in result.errors:
        console.print(f"[yellow]! {error}[/yellow]")

    if out:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        console.print(f"[green]+[/green] Wrote preview: {out}")

    LedgerWriter(paths.ledger_file).append_event(
        event_type="IMPORT_PREVIEWED",
        payload={
            "file": file.name,
            "rows": result.imported,
            "turn_conflicts": len(result.turn_conflicts),
            "errors": len(result.errors),
        },
    )


def _load_rows(rows_file: Path) -> list:
    """Rows from ``{"rows": [...]}``, a saved preview ``{"results": [...]}`` or a bare list."""
    try:
        data = json.loads(rows_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ImportInputError(f"Cannot read rows from {rows_file}: {e}") from e

    if isinstance(data, dict):
        data = data.get("rows", data.get("results"))
    if not isinstance(data, list):
        raise ImportInputError(f"{rows_file}: expected a 'rows' list")
    return data


@app.command()
def apply(
    rows_file: Path = typer.Argument(..., help="JSON file of reviewed rows"),
    home: str = _home_option(),
    db: str = _db_option(),
):
    """Create notes from reviewed preview rows and record an import batch."""
    config, paths = _load_config(home, db)
    allocator = SlugAllocator(
        max_length=config.imports.slug_max_length,
        max_retries=config.imports.slug_max_retries,
    )

    try:
        rows = _load_rows(rows_file)
        with Store.open(paths.db_file) as store:
            engine = NoteIngestionEngine.from_store(store, allocator, config.imports.source_type)
            result = engine.apply(rows)
    except ImportInputError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]+[/green] Created {result.created} note(s)")
    if result.import_batch_id:
        console.print(f"  Import batch: [yellow]{result.import_batch_id}[/yellow]")
    for failure in result.failed:
        console.print(f"  [red]x {failure.import_key}: {failure.error}[/red]")
    if result.cleanup_needed:
        console.print(f"[yellow]{len(result.cleanup_needed)} existing note(s) look like merged turns:[/yellow]")
        for item in result.cleanup_needed:
            where = " / ".join(x for x in (item.existing_subject_name, item.existing_topic_name) if x)
            console.print(f"  - {item.existing_note_title} [dim]({where or 'unfiled'})[/dim]")

    LedgerWriter(paths.ledger_file).record_apply(result, rows_file=str(rows_file))
    if result.failed:
        raise typer.Exit(code=1)


@app.command()
def coverage(
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Report path (default from config)"),
    home: str = _home_option(),
    db: str = _db_option(),
):
    """Report which turns of each conversation have been imported."""
    config, paths = _load_config(home, db)
    output_path = out or paths.coverage_report

    with Store.open(paths.db_file) as store:
        report = build_coverage_report(store.notes)
    write_report(report, output_path)

    console.print(f"[green]+[/green] Wrote coverage report to: {output_path}")
    console.print()
    render_coverage_table(report, console)

    LedgerWriter(paths.ledger_file).append_event(
        event_type="COVERAGE_REPORT_WRITTEN",
        payload={"path": str(output_path), "chat_count": report.chat_count},
    )


@app.command("audit-files")
def audit_files(
    directory: Path = typer.Argument(..., help="Directory of exported .md files (searched recursively)"),
    brief: bool = typer.Option(False, "--brief", help="Only list files with missing turns"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Report path (default from config)"),
    home: str = _home_option(),
    db: str = _db_option(),
):
    """Check exported files against the store without modifying it."""
    config, paths = _load_config(home, db)
    output_path = out or paths.file_status_report

    try:
        with Store.open(paths.db_file) as store:
            report = audit_directory(directory.resolve(), store.notes)
    except NotADirectoryError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if not report.files:
        console.print(f"[yellow]No .md files found under {directory}[/yellow]")
        return

    write_report(report, output_path)
    console.print(f"[green]+[/green] Wrote file status report to: {output_path}")
    console.print()

    if brief:
        lines = brief_lines(report)
        text_path = output_path.with_suffix(".txt")
        text_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        for line in lines:
            console.print(line, markup=False)
        console.print()
        console.print(f"[dim]Wrote brief text report to: {text_path}[/dim]")
    else:
        render_audit_table(report, console)

    LedgerWriter(paths.ledger_file).append_event(
        event_type="FILE_AUDIT_WRITTEN",
        payload={"path": str(output_path), "root_dir": report.root_dir, "file_count": report.file_count},
    )


batches_app = typer.Typer(help="Import batch commands")
app.add_typer(batches_app, name="batches")


@batches_app.command("list")
def batches_list(
    home: str = _home_option(),
    db: str = _db_option(),
):
    """List import batches, newest first."""
    config, paths = _load_config(home, db)
    with Store.open(paths.db_file) as store:
        batches = ImportBatchRecorder(store.batches, store.notes).list_batches()

    if not batches:
        console.print("[dim]No import batches[/dim]")
        return

    table = Table(title=f"{len(batches)} Import Batch(es)")
    table.add_column("Batch ID", style="yellow", no_wrap=True)
    table.add_column("Created (UTC)", style="cyan")
    table.add_column("Imported", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Source", style="magenta")
    for batch in batches:
        table.add_row(
            batch.id,
            batch.created_at,
            str(batch.imported_count),
            str(batch.remaining_count),
            batch.source_type or "-",
        )
    console.print(table)


@batches_app.command("notes")
def batches_notes(
    batch_id: str = typer.Argument(..., help="Import batch ID"),
    home: str = _home_option(),
    db: str = _db_option(),
):
    """List the notes stamped with an import batch."""
    config, paths = _load_config(home, db)
    with Store.open(paths.db_file) as store:
        notes = ImportBatchRecorder(store.batches, store.notes).batch_notes(batch_id)

    if not notes:
        console.print(f"[dim]No notes for batch {batch_id}[/dim]")
        return

    table = Table(title=f"Notes in batch {_short(batch_id)}")
    table.add_column("Note ID", style="yellow")
    table.add_column("Title")
    table.add_column("Slug", style="cyan")
    table.add_column("Turn", justify="right")
    for note in notes:
        turn = note.chatworthy_turn_index
        table.add_row(
            _short(note.id),
            note.title,
            note.slug,
            f"{turn}/{note.chatworthy_total_turns}" if turn is not None else "-",
        )
    console.print(table)


@batches_app.command("delete")
def batches_delete(
    batch_id: str = typer.Argument(..., help="Import batch ID"),
    home: str = _home_option(),
    db: str = _db_option(),
):
    """Delete an import batch record. Its notes are kept."""
    config, paths = _load_config(home, db)
    try:
        with Store.open(paths.db_file) as store:
            recorder = ImportBatchRecorder(store.batches, store.notes)
            notes_kept = len(recorder.batch_notes(batch_id))
            recorder.delete_batch(batch_id)
    except BatchNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]+[/green] Deleted import batch {batch_id} [dim]({notes_kept} note(s) kept)[/dim]")
    LedgerWriter(paths.ledger_file).record_batch_deleted(batch_id, notes_kept)


@batches_app.command("history")
def batches_history(
    batch_id: str = typer.Argument(..., help="Import batch ID or a unique prefix"),
    home: str = _home_option(),
):
    """Show the ledger events of one import batch."""
    config, paths = _load_config(home, None)

    events = read_batch_history(paths.ledger_file, batch_id)
    if not events:
        console.print(f"[dim]No ledger events for batch {batch_id}[/dim]")
        return

    table = Table(title=f"History of batch {_short(batch_id)}")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Event Type", style="magenta", no_wrap=True)
    table.add_column("Details", style="dim")
    for event in events:
        if event.event_type == "IMPORT_APPLIED":
            details = f"{event.payload.get('created', 0)} created from {event.payload.get('rows_file') or '-'}"
        elif event.event_type == "IMPORT_BATCH_DELETED":
            details = f"record deleted, {event.payload.get('notes_kept', 0)} note(s) kept"
        else:
            details = json.dumps(event.payload)
        table.add_row(event.ts.strftime("%Y-%m-%d %H:%M:%S"), event.event_type, details)
    console.print(table)


ledger_app = typer.Typer(help="Ledger commands")
app.add_typer(ledger_app, name="ledger")


@ledger_app.command("tail")
def ledger_tail(
    n: int = typer.Option(20, "--n", help="Number of recent events to display"),
    home: str = _home_option(),
):
    """Display the last N events from the ledger."""
    config, paths = _load_config(home, None)

    events = read_ledger_tail(paths.ledger_file, n=n)
    if not events:
        console.print("[dim]No events in ledger[/dim]")
        return

    table = Table(title=f"Last {len(events)} Ledger Event(s)")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Event Type", style="magenta", no_wrap=True)
    table.add_column("Batch", style="yellow")
    table.add_column("Payload", style="dim")
    for event in events:
        payload_str = json.dumps(event.payload)
        if len(payload_str) > 60:
            payload_str = payload_str[:57] + "..."
        table.add_row(
            event.ts.strftime("%Y-%m-%d %H:%M:%S"),
            event.event_type,
            _short(event.import_batch_id),
            payload_str,
        )
    console.print(table)


@app.command()
def version():
    """Show Chatalog version."""
    from . import __version__
    console.print(f"Chatalog v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
