"""Tests for front-matter extraction."""

from chatalog.chatworthy.frontmatter import normalize_tags, parse_front_matter, split_front_matter


def test_parses_all_known_fields(three_turn_export):
    fm, body = parse_front_matter(three_turn_export.decode("utf-8"))

    assert fm.present
    assert fm.error is None
    assert fm.note_id == "note-123"
    assert fm.chat_id == "chat-abc"
    assert fm.title == "Weeknight Pasta"
    assert fm.chat_title == "Pasta Ideas"
    assert fm.subject == "Cooking"
    assert fm.topic == "Pasta"
    assert fm.tags == ["dinner", "quick"]
    assert fm.summary == "Ideas for fast pasta dinners"
    assert fm.page_url == "https://chat.example.com/c/chat-abc"
    assert body.startswith("<!-- chatalog-meta")


def test_missing_front_matter_is_not_an_error():
    text = "# Just a heading\n\nSome text.\n"
    fm, body = parse_front_matter(text)

    assert not fm.present
    assert fm.error is None
    assert fm.chat_id is None
    assert fm.tags == []
    assert body == text


def test_comma_separated_tags_are_trimmed_and_deduplicated():
    assert normalize_tags(" a, b ,a,, c ") == ["a", "b", "c"]
    assert normalize_tags(["x", " y ", "x", None]) == ["x", "y"]
    assert normalize_tags(None) == []
    assert normalize_tags(42) == []


def test_numeric_ids_are_stringified_and_blank_fields_dropped():
    fm, _ = parse_front_matter("---\nchatId: 12345\nnoteId: '  '\ntitle: '  Hello '\n---\nbody\n")

    assert fm.chat_id == "12345"
    assert fm.note_id is None
    assert fm.title == "Hello"


def test_bom_and_crlf_are_tolerated():
    text = "\ufeff---\r\nchatId: abc\r\n---\r\nbody line\r\n"
    fm, body = parse_front_matter(text)

    assert fm.chat_id == "abc"
    assert body == "body line\r\n"


def test_unterminated_block_is_body_text():
    text = "---\nchatId: abc\nno closing delimiter\n"
    block, body = split_front_matter(text)

    assert block is None
    assert body == text


def test_malformed_yaml_degrades_to_no_fields():
    fm, body = parse_front_matter("---\nchatId: [unclosed\n---\nthe body\n")

    assert fm.present
    assert fm.error is not None
    assert fm.chat_id is None
    assert body == "the body\n"


def test_non_mapping_block_reports_error():
    fm, body = parse_front_matter("---\n- just\n- a list\n---\nbody\n")

    assert fm.error == "Front matter is not a mapping"
    assert body == "body\n"


def test_empty_block():
    fm, body = parse_front_matter("---\n---\nbody\n")

    assert fm.present
    assert fm.error is None
    assert body == "body\n"
