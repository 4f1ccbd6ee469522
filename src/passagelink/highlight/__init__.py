"""Snippet location and highlight marking."""

from __future__ import annotations

from .highlighter import Highlighter, HighlightOutcome, SnippetFailure
from .locator import (
    TextNodeRange,
    build_adaptive_pattern,
    build_text_node_ranges,
    find_boundary,
    locate_snippet,
    map_offsets,
)

__all__ = [
    "Highlighter",
    "HighlightOutcome",
    "SnippetFailure",
    "TextNodeRange",
    "build_adaptive_pattern",
    "build_text_node_ranges",
    "find_boundary",
    "locate_snippet",
    "map_offsets",
]
