"""Tests for the export-file audit."""

import pytest

from chatalog.audit import audit_directory, brief_lines, collect_markdown_files, scan_file
from chatalog.models import NoteDraft


def _export(chat_id, turns):
    head = f"---\nchatId: {chat_id}\nchatTitle: Chat {chat_id}\n---\n" if chat_id else ""
    body = "".join(
        f'<a id="p-{i}"></a>\n**Prompt**\n\n>   Question   number {i}\n\n' for i in range(1, turns + 1)
    )
    return head + "# Title\n\n" + body


def _stored(store, n, **provenance):
    store.notes.create(NoteDraft(title=f"t{n}", slug=f"t{n}", **provenance))


@pytest.fixture
def export_dir(tmp_path):
    root = tmp_path / "exports"
    (root / "sub").mkdir(parents=True)
    (root / "full.md").write_text(_export("chat-full", 3), encoding="utf-8")
    (root / "partial.md").write_text(_export("chat-partial", 3), encoding="utf-8")
    (root / "none.md").write_text(_export("chat-none", 2), encoding="utf-8")
    (root / "nokey.md").write_text("Loose text\n", encoding="utf-8")
    (root / "sub" / "by-name.md").write_text("Single turn\n", encoding="utf-8")
    (root / "notes.txt").write_text("ignored", encoding="utf-8")
    return root


@pytest.fixture
def populated(store):
    n = 0
    for i in (1, 2, 3):
        n += 1
        _stored(store, n, chatworthy_chat_id="chat-full", chatworthy_turn_index=i)
    for i in (1, 2):
        n += 1
        _stored(store, n, chatworthy_chat_id="chat-partial", chatworthy_turn_index=i)
    _stored(store, 99, chatworthy_file_name="by-name.md", chatworthy_turn_index=1)
    return store


def _by_name(report):
    return {f.file_name: f for f in report.files}


def test_collect_only_markdown_recursively(export_dir):
    names = [p.name for p in collect_markdown_files(export_dir)]
    assert sorted(names) == ["by-name.md", "full.md", "nokey.md", "none.md", "partial.md"]


def test_scan_file_uses_chat_id_then_note_id(tmp_path):
    path = tmp_path / "x.md"
    path.write_text("---\nnoteId: note-9\n---\nbody\n", encoding="utf-8")

    scanned = scan_file(path)
    assert scanned.conversation_key == "note-9"
    assert scanned.turns_in_file == 1


def test_statuses(export_dir, populated):
    report = audit_directory(export_dir, populated.notes)
    files = _by_name(report)

    assert report.file_count == 5

    assert files["full.md"].status == "complete"
    assert files["full.md"].missing_turn_snippets == []

    partial = files["partial.md"]
    assert partial.status == "partial"
    assert partial.imported_turn_indexes == [1, 2]
    assert partial.missing_turn_indexes == [2]
    assert [(s.turn_index, s.snippet) for s in partial.missing_turn_snippets] == [
        (2, "**Prompt** > Question number 3")
    ]

    none = files["none.md"]
    assert none.status == "none"
    assert none.missing_turn_indexes == [0, 1]
    assert len(none.missing_turn_snippets) == 2

    assert files["nokey.md"].status == "unknown"
    assert files["by-name.md"].status == "complete"
    assert files["by-name.md"].conversation_key is None


def test_snippets_are_truncated(tmp_path, store):
    root = tmp_path / "long"
    root.mkdir()
    (root / "long.md").write_text("---\nchatId: c\n---\n" + "word " * 100, encoding="utf-8")

    [status] = audit_directory(root, store.notes).files
    assert status.status == "none"
    assert len(status.missing_turn_snippets[0].snippet) == 120


def test_brief_lines(export_dir, populated):
    lines = brief_lines(audit_directory(export_dir, populated.notes))

    assert lines[0] == "Files with status NONE or PARTIAL:"
    assert "none.md [NONE]" in lines
    assert "partial.md [PARTIAL]" in lines
    assert "  - Missing turn 2: **Prompt** > Question number 3" in lines
    assert not any("full.md" in line for line in lines)


def test_brief_lines_when_everything_imported(tmp_path, store):
    root = tmp_path / "done"
    root.mkdir()
    (root / "one.md").write_text("---\nchatId: c1\n---\nbody\n", encoding="utf-8")
    _stored(store, 1, chatworthy_chat_id="c1", chatworthy_turn_index=0)

    assert brief_lines(audit_directory(root, store.notes)) == ["All files are fully imported (status=complete)."]


def test_not_a_directory(tmp_path, store):
    with pytest.raises(NotADirectoryError):
        audit_directory(tmp_path / "missing", store.notes)
