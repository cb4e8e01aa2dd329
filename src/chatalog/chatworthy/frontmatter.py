"""Front-matter extraction for Chatworthy Markdown exports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_DELIM = "---"
_BOM = "\ufeff"


@dataclass(frozen=True)
class FrontMatter:
    """Fields read from the metadata block; every field may be absent."""

    note_id: Optional[str] = None
    chat_id: Optional[str] = None
    title: Optional[str] = None
    chat_title: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    summary: Optional[str] = None
    page_url: Optional[str] = None
    present: bool = False
    error: Optional[str] = None


def split_front_matter(text: str) -> tuple[Optional[str], str]:
    """Split ``text`` into (raw metadata block, body).

    Returns ``(None, text)`` when the text does not open with a ``---`` line or
    the block is never closed.
    """
    if text.startswith(_BOM):
        text = text[1:]

    first_nl = text.find("\n")
    first_line = text if first_nl == -1 else text[:first_nl]
    if first_line.rstrip("\r").rstrip() != _DELIM or first_nl == -1:
        return None, text

    offset = first_nl + 1
    while offset <= len(text):
        next_nl = text.find("\n", offset)
        line = text[offset:] if next_nl == -1 else text[offset:next_nl]
        if line.rstrip("\r").rstrip() == _DELIM:
            block = text[first_nl + 1 : offset]
            body = "" if next_nl == -1 else text[next_nl + 1 :]
            return block, body
        if next_nl == -1:
            break
        offset = next_nl + 1

    return None, text


def normalize_tags(value: Any) -> list[str]:
    """Normalize a comma-separated string or list into trimmed, unique tags."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value if v is not None]
    else:
        return []

    tags: list[str] = []
    for item in items:
        tag = item.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _text_field(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    # bool is an int subclass; a YAML `yes` is not an identifier
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_front_matter(text: str) -> tuple[FrontMatter, str]:
    """Parse the leading metadata block of ``text``.

    Args:
        text: Full document text

    Returns:
        Tuple of (FrontMatter, body). A missing block yields an empty
        FrontMatter and the whole text as body; a malformed block yields an
        empty FrontMatter carrying ``error`` and the text after the block.
    """
    block, body = split_front_matter(text)
    if block is None:
        return FrontMatter(), body

    try:
        data = yaml.safe_load(block) if block.strip() else {}
    except yaml.YAMLError as e:
        logger.warning(f"Malformed front matter ignored: {e}")
        return FrontMatter(present=True, error=f"Malformed front matter: {e}"), body

    if data is None:
        data = {}
    if not isinstance(data, dict):
        return FrontMatter(present=True, error="Front matter is not a mapping"), body

    return (
        FrontMatter(
            note_id=_text_field(data, "noteId"),
            chat_id=_text_field(data, "chatId"),
            title=_text_field(data, "title"),
            chat_title=_text_field(data, "chatTitle"),
            subject=_text_field(data, "subject"),
            topic=_text_field(data, "topic"),
            tags=normalize_tags(data.get("tags")),
            summary=_text_field(data, "summary"),
            page_url=_text_field(data, "pageUrl"),
            present=True,
        ),
        body,
    )
