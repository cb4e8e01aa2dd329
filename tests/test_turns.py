"""Tests for turn splitting."""

from chatalog.chatworthy.turns import count_anchors, count_turns, split_turns


def test_no_anchors_yields_single_section():
    body = "# Title\n\nOnly one turn here.\n"
    split = split_turns(body)

    assert not split.anchored
    assert len(split.sections) == 1
    assert split.sections[0].turn_index == 1
    assert split.sections[0].markdown == body
    assert count_turns(body) == 1


def test_k_anchors_yield_k_sections_in_order():
    body = (
        "preamble\n"
        '<a id="p-1"></a>\nfirst\n'
        '<a id="p-2"></a>\nsecond\n'
        '<a id="p-3"></a>\nthird\n'
    )
    split = split_turns(body)

    assert split.anchored
    assert [s.turn_index for s in split.sections] == [1, 2, 3]
    assert split.sections[0].markdown == '<a id="p-1"></a>\nfirst\n'
    assert split.sections[2].markdown == '<a id="p-3"></a>\nthird\n'
    assert count_anchors(body) == 3


def test_declared_ordinal_does_not_drive_index():
    body = '<a id="p-7"></a>\nA\n<a id="p-3"></a>\nB\n'
    split = split_turns(body)

    assert [s.turn_index for s in split.sections] == [1, 2]
    assert [s.declared_ordinal for s in split.sections] == [7, 3]


def test_anchor_must_start_a_line():
    body = 'text <a id="p-1"></a> inline\n'
    assert count_anchors(body) == 0
    assert not split_turns(body).anchored


def test_indented_and_crlf_anchors():
    body = '  <a id="p-1"></a>\r\nA\r\n<A ID="p-2"></A>\r\nB\r\n'
    split = split_turns(body)

    assert len(split.sections) == 2
    assert split.sections[1].markdown.endswith("B\r\n")
