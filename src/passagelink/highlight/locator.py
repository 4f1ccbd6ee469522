"""
Fuzzy location of approximately reproduced snippets in a target's text.

Generated sentences rarely match the page verbatim: punctuation, spacing and
digit/letter runs drift. When an exact search fails, the start and the end of
the snippet are located independently with a loose pattern built from a short
slice of the snippet, growing the slice until it matches exactly once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from bs4.element import NavigableString

from ..exceptions import SnippetNotFound, SnippetTooShort, TextNodeRangeNotFound

PUNCTUATION = ".,;:!?'\"\\-\u2018\u2019\u201c\u201d"

_DIGIT_LETTER = re.compile(r"(\d+)([a-zA-Z])")
_LETTER_DIGIT = re.compile(r"([a-zA-Z])(\d+)")
_DIGIT_SYMBOL = re.compile(r"(\d+)([%$#@!&*+=<>])")
_PUNCTUATION_RUN = re.compile(f"[{PUNCTUATION}]")
_SEPARATOR = f"[\\s{PUNCTUATION}]*"


def build_adaptive_pattern(text: str) -> re.Pattern[str]:
    """Case-insensitive pattern tolerant to punctuation and spacing drift."""
    spaced = _DIGIT_LETTER.sub(r"\1 \2", text)
    spaced = _LETTER_DIGIT.sub(r"\1 \2", spaced)
    spaced = _DIGIT_SYMBOL.sub(r"\1 \2", spaced).strip()
    cleaned = _PUNCTUATION_RUN.sub(" ", spaced)
    words = [re.escape(word) for word in cleaned.split()]
    return re.compile(_SEPARATOR.join(words), re.IGNORECASE)


# Outcomes of one window search besides a position
_NO_MATCH = "no_match"
_AMBIGUOUS = "ambiguous"


def _search_windows(snippet: str, text: str, from_start: bool, min_window: int, max_window: int) -> int | str:
    window = min_window
    longest = min(max_window, len(snippet))
    while window <= longest:
        part = snippet[:window] if from_start else snippet[-window:]
        matches: List[re.Match[str]] = []
        for match in build_adaptive_pattern(part).finditer(text):
            matches.append(match)
            if len(matches) > 1:
                break
        if len(matches) == 1:
            found = matches[0]
            return found.start() if from_start else found.start() + len(found.group(0))
        if not matches:
            return _NO_MATCH
        window += 1
    return _AMBIGUOUS


def find_boundary(
    snippet: str,
    text: str,
    from_start: bool = True,
    min_window: int = 2,
    max_window: int = 20,
) -> int:
    """Offset in ``text`` where ``snippet`` starts (or ends, if not ``from_start``).

    A slice that matches nowhere means the snippet carries noise on that side:
    the snippet is shortened by one character from that side and the search
    repeats, at most ``len(snippet)`` times.

    Raises:
        SnippetTooShort: the (possibly shortened) snippet is below ``min_window``.
        SnippetNotFound: no slice length disambiguates the boundary.
    """
    current = snippet
    for _ in range(len(snippet) + 1):
        if len(current) < min_window:
            raise SnippetTooShort(f"{current!r} is shorter than the {min_window}-character search window")
        outcome = _search_windows(current, text, from_start, min_window, max_window)
        if isinstance(outcome, int):
            return outcome
        if outcome == _AMBIGUOUS:
            break
        current = current[1:] if from_start else current[:-1]
    side = "start" if from_start else "end"
    raise SnippetNotFound(f"Could not locate the {side} of {snippet!r}")


def locate_snippet(snippet: str, text: str, min_window: int = 2, max_window: int = 20) -> Tuple[int, int]:
    """``(start, end)`` offsets of ``snippet`` in ``text``: exact first, fuzzy second."""
    index = text.find(snippet)
    if index != -1 and snippet:
        return index, index + len(snippet)
    start = find_boundary(snippet, text, True, min_window, max_window)
    end = find_boundary(snippet, text, False, min_window, max_window)
    if end <= start:
        raise SnippetNotFound(f"Boundaries of {snippet!r} are out of order ({start} >= {end})")
    return start, end


@dataclass(slots=True, frozen=True, eq=False)
class TextNodeRange:
    """A text node and its ``[start, end)`` span in the element's text content."""

    node: NavigableString
    start: int
    end: int


def build_text_node_ranges(nodes: Sequence[NavigableString]) -> List[TextNodeRange]:
    ranges: List[TextNodeRange] = []
    index = 0
    for node in nodes:
        end = index + len(node)
        ranges.append(TextNodeRange(node=node, start=index, end=end))
        index = end
    return ranges


def map_offsets(ranges: Sequence[TextNodeRange], start: int, end: int) -> Tuple[TextNodeRange, int, TextNodeRange, int]:
    """Map text-content offsets to ``(range, offset_in_node)`` pairs.

    The start maps into the node with ``start <= s < end``, the end into the
    first node with ``start <= e <= end``.
    """
    start_range: Optional[TextNodeRange] = next((r for r in ranges if r.start <= start < r.end), None)
    end_range: Optional[TextNodeRange] = next((r for r in ranges if r.start <= end <= r.end), None)
    if start_range is None or end_range is None:
        raise TextNodeRangeNotFound(f"Could not find text node ranges for offsets {start}-{end}")
    return start_range, start - start_range.start, end_range, end - end_range.start
