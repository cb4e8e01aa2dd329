"""Tests for coverage reconciliation."""

import json

from chatalog.coverage import (
    build_coverage_report,
    classify,
    compute_coverage,
    normalize_index_base,
    write_report,
)
from chatalog.models import Note, NoteDraft


def _note(n, **fields):
    return Note(id=f"n{n}", slug=f"s{n}", created_at="2025-01-01T00:00:00+00:00", **fields)


def _chat(chat_id, indexes, total=None, **extra):
    return [
        _note(f"{chat_id}-{i}", chatworthy_chat_id=chat_id, chatworthy_turn_index=i, chatworthy_total_turns=total, **extra)
        for i in indexes
    ]


def test_zero_based_complete():
    [summary] = compute_coverage(_chat("c", [0, 1, 2], total=3))

    assert summary.imported_turn_indexes == [0, 1, 2]
    assert summary.missing_turn_indexes == []
    assert summary.total_turns == 3
    assert summary.status == "complete"


def test_one_based_indexes_are_normalized():
    [summary] = compute_coverage(_chat("c", [1, 2, 3], total=4))

    assert summary.imported_turn_indexes == [1, 2, 3]
    assert summary.missing_turn_indexes == [3]
    assert summary.status == "partial"


def test_no_indexes_and_no_total_is_unknown():
    notes = [_note(1, chatworthy_chat_id="c")]
    [summary] = compute_coverage(notes)

    assert summary.imported_turn_indexes == []
    assert summary.total_turns is None
    assert summary.missing_turn_indexes == []
    assert summary.status == "unknown"


def test_conflicting_totals_use_maximum():
    notes = _chat("c", [0, 1], total=3) + _chat("c", [2], total=5)
    [summary] = compute_coverage(notes)

    assert summary.total_turns == 5
    assert summary.missing_turn_indexes == [3, 4]
    assert summary.status == "partial"


def test_total_inferred_from_highest_index():
    [summary] = compute_coverage(_chat("c", [0, 1, 3]))

    assert summary.total_turns == 4
    assert summary.missing_turn_indexes == [2]


def test_everything_missing_is_unknown():
    [summary] = compute_coverage(_chat("c", [5, 6], total=3))

    assert summary.missing_turn_indexes == [0, 1, 2]
    assert summary.status == "unknown"


def test_duplicate_indexes_counted_once():
    [summary] = compute_coverage(_chat("c", [0, 0, 1], total=2))

    assert summary.imported_turn_indexes == [0, 1]
    assert summary.imported_turn_count == 2
    assert summary.status == "complete"


def test_grouping_falls_back_to_file_name_and_skips_unkeyed_notes():
    notes = [
        _note(1, chatworthy_file_name="b.md", chatworthy_turn_index=1, chatworthy_total_turns=1),
        _note(2, chatworthy_chat_id="a-chat", chatworthy_file_name="a.md", chatworthy_turn_index=0),
        _note(3, chatworthy_chat_id="a-chat", chatworthy_file_name="a2.md", chatworthy_turn_index=1),
        _note(4, chatworthy_turn_index=0),
    ]
    summaries = compute_coverage(notes)

    assert [s.conversation_key for s in summaries] == ["a-chat", "b.md"]
    assert summaries[0].file_names == ["a.md", "a2.md"]
    assert summaries[1].status == "complete"


def test_title_candidates_keep_first_seen_order():
    notes = _chat("c", [0], chatworthy_chat_title="Second") + _chat("c", [1], chatworthy_chat_title="First")
    [summary] = compute_coverage(notes)

    assert summary.chat_title == "Second"
    assert summary.title_candidates == ["Second", "First"]


def test_classify_edge_cases():
    assert classify([], 0) == ([], "complete")
    assert classify([0], None) == ([], "unknown")
    assert classify([0], -1) == ([], "unknown")


def test_normalize_index_base():
    assert normalize_index_base([1, 2]) == {0, 1}
    assert normalize_index_base([0, 1]) == {0, 1}
    assert normalize_index_base([2, 3]) == {2, 3}
    assert normalize_index_base([]) == set()


def test_report_from_store_written_as_camel_case_json(store, tmp_path):
    for i in (1, 2):
        store.notes.create(
            NoteDraft(
                title=f"Turn {i}",
                slug=f"turn-{i}",
                chatworthy_chat_id="chat-abc",
                chatworthy_file_name="pasta.md",
                chatworthy_turn_index=i,
                chatworthy_total_turns=3,
            )
        )
    store.notes.create(NoteDraft(title="Plain", slug="plain"))

    report = build_coverage_report(store.notes)
    output = write_report(report, tmp_path / "out" / "coverage.json")

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["chatCount"] == 1
    chat = data["chats"][0]
    assert chat["conversationKey"] == "chat-abc"
    assert chat["importedTurnIndexes"] == [1, 2]
    assert chat["missingTurnIndexes"] == [2]
    assert chat["status"] == "partial"
    assert "generatedAt" in data
    assert not (tmp_path / "out" / "coverage.json.tmp").exists()
