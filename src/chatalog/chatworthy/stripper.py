"""Remove exporter boilerplate from a Chatworthy body or turn section."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

_TOC_RE = re.compile(
    r"^[ \t]*##[ \t]*Table of Contents[ \t]*\r?\n(?:[ \t]*\r?\n)?"
    r"(?:^\d+\.[ \t]+\[.*?\]\(#p-\d+\)[ \t]*(?:\r?\n|\Z))+",
    re.MULTILINE | re.IGNORECASE,
)
_ANCHOR_LINE_RE = re.compile(r'^[ \t]*<a id="p-\d+"></a>[ \t]*(?:\r?\n|\Z)', re.MULTILINE | re.IGNORECASE)
_META_LINE_RE = re.compile(r"^(?:Source|Exported):(?:[ \t].*)?(?:\r?\n|\Z)", re.MULTILINE | re.IGNORECASE)
_CHATALOG_META_RE = re.compile(r"^[ \t]*<!--\s*chatalog-meta\b.*?-->[ \t]*(?:\r?\n|\Z)", re.MULTILINE)
_EXCESS_BLANKS_RE = re.compile(r"\n{3,}")

# Each matcher returns the text with its heading removed, or None when it does not apply.
TitleMatcher = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class StripOptions:
    subject: Optional[str] = None
    topic: Optional[str] = None
    chat_title: Optional[str] = None
    fm_title: Optional[str] = None


def _leading_heading_matcher(title_pattern: str) -> TitleMatcher:
    heading_re = re.compile(
        r"^\ufeff?\s*#[ \t]*" + title_pattern + r"[ \t]*(?:(?:\r?\n)+|\Z)",
        re.IGNORECASE,
    )

    def match(text: str) -> Optional[str]:
        stripped, n = heading_re.subn("", text, count=1)
        return stripped if n else None

    return match


def build_title_matchers(opts: StripOptions) -> list[TitleMatcher]:
    """Ordered matchers for the duplicate top-level heading.

    Priority: ``Subject - Topic`` composite (any of - – — : as separator),
    then the chat title, then the front-matter title.
    """
    matchers: list[TitleMatcher] = []
    if opts.subject and opts.subject.strip() and opts.topic and opts.topic.strip():
        matchers.append(
            _leading_heading_matcher(
                re.escape(opts.subject.strip()) + r"[ \t]*[–—\-:][ \t]*" + re.escape(opts.topic.strip())
            )
        )
    for candidate in (opts.chat_title, opts.fm_title):
        if candidate and candidate.strip():
            matchers.append(_leading_heading_matcher(re.escape(candidate.strip())))
    return matchers


def strip_duplicate_title(text: str, matchers: list[TitleMatcher]) -> str:
    """Remove at most one leading heading, using the first matcher that applies."""
    for matcher in matchers:
        stripped = matcher(text)
        if stripped is not None:
            return stripped
    return text


def strip_boilerplate(markdown: str, opts: Optional[StripOptions] = None) -> str:
    """Remove ToC block, anchors, meta rows and a duplicate title heading.

    Args:
        markdown: Body or turn section
        opts: Title candidates used for the duplicate-heading step

    Returns:
        Cleaned Markdown with runs of blank lines collapsed and trailing
        whitespace removed
    """
    opts = opts or StripOptions()
    out = _TOC_RE.sub("", markdown)
    out = _ANCHOR_LINE_RE.sub("", out)
    out = _META_LINE_RE.sub("", out)
    out = _CHATALOG_META_RE.sub("", out)
    out = strip_duplicate_title(out, build_title_matchers(opts))
    out = out.replace("\r\n", "\n")
    out = _EXCESS_BLANKS_RE.sub("\n\n", out)
    return out.rstrip()
