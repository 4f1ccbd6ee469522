"""
Marks located snippets inside a target element.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

import structlog
from bs4.element import NavigableString, Tag

from ..config.config import HighlightSettings
from ..dom.document import HtmlDocument
from ..dom.walker import iter_text_nodes, text_content
from ..exceptions import HighlightError, TargetNotFound, TextNodeRangeNotFound
from .locator import build_text_node_ranges, locate_snippet, map_offsets

logger = structlog.get_logger(__name__)


@dataclass(slots=True, frozen=True)
class SnippetFailure:
    snippet: str
    kind: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"snippet": self.snippet, "kind": self.kind, "message": self.message}


@dataclass(slots=True)
class HighlightOutcome:
    """Result of one highlight request: marks placed and per-snippet failures."""

    marked: int = 0
    failures: List[SnippetFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.marked > 0 and not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "marked": self.marked,
            "failures": [failure.to_dict() for failure in self.failures],
        }


SentenceLike = Union[str, Any]


class Highlighter:
    """Wraps located snippets of a target in marker ``<span>`` elements."""

    def __init__(self, document: HtmlDocument, settings: HighlightSettings | None = None) -> None:
        self.document = document
        self.settings = settings or HighlightSettings()
        self.logger = logger.bind(component="Highlighter")

    @property
    def marker_class(self) -> str:
        return self.settings.marker_class

    def find_target(self, target_id: int | str) -> Tag:
        try:
            element = self.document.find_by_node_id(int(target_id))
        except (TypeError, ValueError):
            element = None
        if element is None:
            raise TargetNotFound(f"Target element with ID {target_id} not found.")
        return element

    def put_highlight(self, target_id: int | str, sentences: Iterable[SentenceLike]) -> HighlightOutcome:
        """Replace the marks of one target with marks for ``sentences``.

        A snippet that cannot be located is recorded as a failure and the
        remaining snippets are still marked.
        """
        element = self.find_target(target_id)
        self._clear(element)

        outcome = HighlightOutcome()
        for sentence in sentences:
            snippet = sentence if isinstance(sentence, str) else getattr(sentence, "text", "")
            if not snippet or not snippet.strip():
                continue
            try:
                self.mark_snippet(snippet, element)
            except HighlightError as e:
                outcome.failures.append(SnippetFailure(snippet=snippet, kind=e.kind, message=str(e)))
                self.logger.info("Snippet not highlighted", event_type=e.kind, target_id=target_id, error=str(e))
                continue
            outcome.marked += 1

        self.logger.debug(
            "Highlighted target", target_id=target_id, marked=outcome.marked, failures=len(outcome.failures)
        )
        return outcome

    def dim_highlight(self) -> int:
        """Remove every marker from the page; returns how many were removed."""
        removed = self._clear(self.document.soup)
        self.logger.debug("Dimmed highlights", removed=removed)
        return removed

    def mark_snippet(self, snippet: str, element: Tag) -> List[Tag]:
        """Wrap ``snippet``'s span within ``element`` and return the markers."""
        start, end = locate_snippet(
            snippet, text_content(element), self.settings.min_window, self.settings.max_window
        )
        nodes = list(iter_text_nodes(element))
        if not nodes:
            raise TextNodeRangeNotFound("No text nodes found in the element")
        ranges = build_text_node_ranges(nodes)
        start_range, start_offset, end_range, end_offset = map_offsets(ranges, start, end)

        selected = ranges[ranges.index(start_range) : ranges.index(end_range) + 1]
        segments: List[NavigableString] = []
        for index, text_range in enumerate(selected):
            local_start = start_offset if index == 0 else 0
            local_end = end_offset if index == len(selected) - 1 else len(text_range.node)
            if local_end > local_start:
                segments.append(_isolate(text_range.node, local_start, local_end))

        if not segments:
            return []
        first, last = segments[0], segments[-1]
        if first.parent is not None and first.parent is last.parent:
            return [self._wrap_siblings(first, last)]
        return [self._wrap_siblings(segment, segment) for segment in segments]

    # --- helpers ---

    def _new_marker(self) -> Tag:
        return self.document.soup.new_tag("span", attrs={"class": [self.marker_class]})

    def _wrap_siblings(self, first: NavigableString, last: NavigableString) -> Tag:
        """Move ``first`` through ``last`` (siblings) into a new marker."""
        members: List[Any] = [first]
        node = first
        while node is not last:
            node = node.next_sibling
            if node is None:
                break
            members.append(node)
        marker = self._new_marker()
        first.insert_before(marker)
        for member in members:
            marker.append(member.extract())
        return marker

    def _clear(self, root: Tag) -> int:
        markers = root.find_all("span", class_=self.marker_class)
        for marker in markers:
            marker.unwrap()
        if markers:
            root.smooth()
        return len(markers)


def _isolate(node: NavigableString, start: int, end: int) -> NavigableString:
    """Split ``node`` so ``[start, end)`` becomes its own text node."""
    value = str(node)
    if start == 0 and end == len(value):
        return node
    factory = type(node)
    middle = factory(value[start:end])
    pieces = []
    if start > 0:
        pieces.append(factory(value[:start]))
    pieces.append(middle)
    if end < len(value):
        pieces.append(factory(value[end:]))
    node.replace_with(*pieces)
    return middle
