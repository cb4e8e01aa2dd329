"""Parsing pipeline for Chatworthy Markdown exports."""

from .frontmatter import FrontMatter, normalize_tags, parse_front_matter, split_front_matter
from .preview import (
    ImportInputError,
    find_turn_conflicts,
    parse_markdown_file,
    parse_zip_archive,
    preview_path,
    preview_upload,
)
from .stripper import StripOptions, build_title_matchers, strip_boilerplate, strip_duplicate_title
from .turns import TurnSection, TurnSplit, count_anchors, count_turns, split_turns

__all__ = [
    "FrontMatter",
    "parse_front_matter",
    "split_front_matter",
    "normalize_tags",
    "TurnSection",
    "TurnSplit",
    "split_turns",
    "count_anchors",
    "count_turns",
    "StripOptions",
    "build_title_matchers",
    "strip_duplicate_title",
    "strip_boilerplate",
    "ImportInputError",
    "parse_markdown_file",
    "parse_zip_archive",
    "find_turn_conflicts",
    "preview_upload",
    "preview_path",
]
