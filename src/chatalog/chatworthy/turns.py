"""Split a Chatworthy export body into per-turn sections on ``<a id="p-N"></a>`` anchors."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

ANCHOR_RE = re.compile(r'^[ \t]*<a id="p-(\d+)"></a>[ \t]*\r?$', re.MULTILINE | re.IGNORECASE)


@dataclass(frozen=True)
class TurnSection:
    turn_index: int  # 1-based discovery order, not the anchor's own ordinal
    markdown: str
    declared_ordinal: Optional[int] = None


@dataclass(frozen=True)
class TurnSplit:
    sections: list[TurnSection]
    anchored: bool


def count_anchors(body: str) -> int:
    return sum(1 for _ in ANCHOR_RE.finditer(body))


def count_turns(body: str) -> int:
    """Number of turns in a body; a body without anchors is a single turn."""
    return count_anchors(body) or 1


def split_turns(body: str) -> TurnSplit:
    """Partition ``body`` at anchor lines.

    Section i runs from anchor i's line start to anchor i+1's line start (or
    the end of the body). Text before the first anchor belongs to no section.
    Without anchors the whole body is section 1.
    """
    matches = list(ANCHOR_RE.finditer(body))
    if not matches:
        return TurnSplit(sections=[TurnSection(turn_index=1, markdown=body)], anchored=False)

    sections: list[TurnSection] = []
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(body)
        sections.append(
            TurnSection(
                turn_index=i + 1,
                markdown=body[m.start() : end],
                declared_ordinal=int(m.group(1)),
            )
        )
    return TurnSplit(sections=sections, anchored=True)
