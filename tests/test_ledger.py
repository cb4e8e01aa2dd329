"""Tests for ledger functionality."""

import json

from chatalog.ledger import LedgerWriter, read_batch_history, read_ledger_tail


def test_ledger_append_creates_file(temp_home):
    """Appending creates the ledger file and its directory."""
    ledger_path = temp_home / "system" / "ledger.jsonl"
    assert not ledger_path.exists()

    writer = LedgerWriter(ledger_path)
    event = writer.append_event(
        event_type="IMPORT_APPLIED",
        payload={"created": 3},
        import_batch_id="batch-1",
    )

    assert ledger_path.exists()
    assert event.event_id
    assert event.run_id
    assert event.ts
    assert event.event_type == "IMPORT_APPLIED"
    assert event.import_batch_id == "batch-1"
    assert event.payload == {"created": 3}


def test_ledger_append_multiple_events(store_paths):
    writer = LedgerWriter(store_paths.ledger_file)

    events = [writer.append_event(event_type="IMPORT_PREVIEWED", payload={"index": i}) for i in range(3)]

    assert len({e.run_id for e in events}) == 1
    assert len({e.event_id for e in events}) == 3

    lines = store_paths.ledger_file.read_text().strip().split("\n")
    assert len(lines) == 3
    for line in lines:
        data = json.loads(line)
        assert {"event_id", "run_id", "ts", "event_type", "import_batch_id", "payload"} <= set(data)


def test_ledger_tail_reads_last_n(store_paths):
    writer = LedgerWriter(store_paths.ledger_file)
    for i in range(10):
        writer.append_event(event_type="COVERAGE_REPORT_WRITTEN", payload={"index": i})

    events = read_ledger_tail(store_paths.ledger_file, n=5)

    assert [e.payload["index"] for e in events] == [5, 6, 7, 8, 9]


def test_ledger_tail_handles_malformed(store_paths):
    writer = LedgerWriter(store_paths.ledger_file)
    writer.append_event(event_type="IMPORT_APPLIED", payload={"index": 1})
    with open(store_paths.ledger_file, "a") as f:
        f.write("this is not json\n")
        f.write('{"incomplete": \n')
        f.write('{"event_type": "NOT_A_TYPE"}\n')
    writer.append_event(event_type="IMPORT_APPLIED", payload={"index": 2})

    events = read_ledger_tail(store_paths.ledger_file, n=10)

    assert [e.payload["index"] for e in events] == [1, 2]


def test_ledger_tail_empty_and_missing(store_paths, temp_home):
    assert read_ledger_tail(store_paths.ledger_file, n=10) == []
    assert read_ledger_tail(temp_home / "nonexistent.jsonl", n=10) == []


def test_ledger_timestamp_is_utc(store_paths):
    from datetime import datetime

    LedgerWriter(store_paths.ledger_file).append_event(event_type="FILE_AUDIT_WRITTEN", payload={})

    data = json.loads(store_paths.ledger_file.read_text().strip())
    parsed = datetime.fromisoformat(data["ts"].replace("Z", "+00:00"))
    assert parsed.tzinfo is not None


def test_record_apply_names_failed_rows_and_cleanup(store_paths):
    from chatalog.models.imports import ApplyResult, CleanupItem, RowFailure

    result = ApplyResult(
        created=1,
        note_ids=["n1"],
        import_batch_id="batch-1",
        cleanup_needed=[CleanupItem(existing_note_id="old-1", existing_note_title="Merged")],
        failed=[RowFailure(import_key="chat.md::1", error="slug taken")],
    )

    event = LedgerWriter(store_paths.ledger_file).record_apply(result, rows_file="rows.json")

    assert event.event_type == "IMPORT_APPLIED"
    assert event.import_batch_id == "batch-1"
    assert event.payload == {
        "rows_file": "rows.json",
        "created": 1,
        "note_ids": ["n1"],
        "failed": ["chat.md::1"],
        "cleanup_needed": ["old-1"],
    }


def test_batch_history_collects_one_batch(store_paths):
    writer = LedgerWriter(store_paths.ledger_file)
    writer.append_event(event_type="IMPORT_PREVIEWED", payload={})
    writer.append_event(event_type="IMPORT_APPLIED", payload={"created": 2}, import_batch_id="aaaa-1111")
    writer.append_event(event_type="IMPORT_APPLIED", payload={"created": 5}, import_batch_id="bbbb-2222")
    writer.record_batch_deleted("aaaa-1111", notes_kept=2)

    history = read_batch_history(store_paths.ledger_file, "aaaa-1111")
    assert [e.event_type for e in history] == ["IMPORT_APPLIED", "IMPORT_BATCH_DELETED"]
    assert history[1].payload == {"notes_kept": 2}

    assert [e.payload for e in read_batch_history(store_paths.ledger_file, "bbbb")] == [{"created": 5}]
    assert read_batch_history(store_paths.ledger_file, "cccc") == []


def test_batch_history_ambiguous_prefix_needs_full_id(store_paths):
    writer = LedgerWriter(store_paths.ledger_file)
    writer.append_event(event_type="IMPORT_APPLIED", payload={}, import_batch_id="abc-1")
    writer.append_event(event_type="IMPORT_APPLIED", payload={}, import_batch_id="abc-2")

    assert read_batch_history(store_paths.ledger_file, "abc") == []
    assert [e.import_batch_id for e in read_batch_history(store_paths.ledger_file, "abc-2")] == ["abc-2"]
