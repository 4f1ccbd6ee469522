"""
Element geometry.

Extraction needs each element's vertical position and rendered size. Pages are
not rendered here, so geometry comes from a :class:`Layout`: either estimated
from document flow (:class:`FlowLayout`) or supplied by whatever did render the
page (:class:`StaticLayout`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Tuple, runtime_checkable

from bs4.element import Tag

from .walker import is_text_node


@dataclass(slots=True, frozen=True)
class BoundingBox:
    """Vertical extent and size of a rendered element."""

    top: float
    bottom: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> Dict[str, float]:
        return {"top": self.top, "bottom": self.bottom, "width": self.width, "height": self.height}


EMPTY_BOX = BoundingBox(top=0.0, bottom=0.0, width=0.0, height=0.0)


@runtime_checkable
class Layout(Protocol):
    """Source of element geometry."""

    def box(self, node: Tag) -> BoundingBox:
        """Return the bounding box of ``node``; an empty box if it is not rendered."""
        ...


class StaticLayout:
    """Geometry captured elsewhere, keyed by correlation id."""

    def __init__(self, boxes: Mapping[int, BoundingBox], default: BoundingBox = EMPTY_BOX) -> None:
        self.boxes = dict(boxes)
        self.default = default

    def box(self, node: Tag) -> BoundingBox:
        from .document import node_id

        nid = node_id(node)
        if nid is None:
            return self.default
        return self.boxes.get(nid, self.default)


# Elements that never render content.
_NON_RENDERED = frozenset(
    {"head", "script", "style", "noscript", "template", "title", "meta", "link", "base", "datalist", "param"}
)

# Replaced elements and their default size when none is declared.
_REPLACED_DEFAULTS: Dict[str, Tuple[float, float]] = {
    "img": (0.0, 0.0),
    "svg": (300.0, 150.0),
    "video": (300.0, 150.0),
    "iframe": (300.0, 150.0),
    "canvas": (300.0, 150.0),
    "embed": (300.0, 150.0),
    "object": (300.0, 150.0),
}

_LENGTH = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$", re.IGNORECASE)


def parse_style(value: object) -> Dict[str, str]:
    """Parse an inline ``style`` attribute into lower-cased declarations."""
    if not isinstance(value, str):
        return {}
    declarations: Dict[str, str] = {}
    for part in value.split(";"):
        if ":" not in part:
            continue
        prop, _, val = part.partition(":")
        declarations[prop.strip().lower()] = val.strip().lower()
    return declarations


def _parse_length(value: object) -> Optional[float]:
    if not isinstance(value, str):
        return None
    match = _LENGTH.match(value)
    return float(match.group(1)) if match else None


def is_hidden(tag: Tag) -> bool:
    """Whether ``tag`` itself opts out of rendering."""
    if tag.name in _NON_RENDERED or tag.has_attr("hidden"):
        return True
    style = parse_style(tag.get("style"))
    return style.get("display") == "none" or style.get("visibility") == "hidden"


def declared_size(tag: Tag) -> Tuple[Optional[float], Optional[float]]:
    """Width and height declared by inline style or presentational attributes."""
    style = parse_style(tag.get("style"))
    width = _parse_length(style.get("width")) if "width" in style else None
    height = _parse_length(style.get("height")) if "height" in style else None
    if width is None:
        width = _parse_length(tag.get("width"))
    if height is None:
        height = _parse_length(tag.get("height"))
    return width, height


class FlowLayout:
    """Deterministic geometry estimated from document flow.

    Text advances a vertical cursor by ``line_height`` per ``chars_per_line``
    characters of whitespace-collapsed text; replaced elements advance it by
    their declared (or default) height. An element spans the cursor positions
    before and after its subtree. Hidden subtrees get an empty box.
    """

    def __init__(self, viewport_width: float = 1280.0, line_height: float = 24.0, chars_per_line: int = 90) -> None:
        self.viewport_width = viewport_width
        self.line_height = line_height
        self.chars_per_line = chars_per_line
        self._boxes: Dict[int, BoundingBox] = {}
        self._roots: List[Tag] = []

    def box(self, node: Tag) -> BoundingBox:
        root = _root_of(node)
        if not any(measured is root for measured in self._roots):
            self._measure(root)
            self._roots.append(root)
        return self._boxes.get(id(node), EMPTY_BOX)

    def invalidate(self) -> None:
        """Forget measured geometry after the tree changed shape."""
        self._boxes.clear()
        self._roots.clear()

    def _measure(self, root: Tag) -> None:
        cursor = 0.0

        def visit(tag: Tag, hidden: bool) -> bool:
            nonlocal cursor
            hidden = hidden or is_hidden(tag)
            top = cursor
            if hidden:
                self._boxes[id(tag)] = BoundingBox(top=top, bottom=top, width=0.0, height=0.0)
                for child in tag.find_all(True):
                    self._boxes[id(child)] = BoundingBox(top=top, bottom=top, width=0.0, height=0.0)
                return False

            width, height = declared_size(tag)
            if tag.name in _REPLACED_DEFAULTS:
                width, height = self._replaced_size(tag.name, width, height)
                cursor = top + height
                self._boxes[id(tag)] = BoundingBox(top=top, bottom=cursor, width=width, height=height)
                return False

            has_text = False
            for child in tag.children:
                if isinstance(child, Tag):
                    has_text = visit(child, hidden) or has_text
                elif is_text_node(child):
                    length = len(" ".join(child.split()))
                    if length:
                        cursor += length / self.chars_per_line * self.line_height
                        has_text = True

            content_height = cursor - top
            if height is None:
                height = content_height
            else:
                cursor = top + max(height, content_height)
            if width is None:
                width = self.viewport_width if (has_text or height > 0) else 0.0
            self._boxes[id(tag)] = BoundingBox(top=top, bottom=top + height, width=width, height=height)
            return has_text

        visit(root, False)

    @staticmethod
    def _replaced_size(name: str, width: Optional[float], height: Optional[float]) -> Tuple[float, float]:
        default_width, default_height = _REPLACED_DEFAULTS[name]
        if width is not None and height is not None:
            return width, height
        if width is not None:
            return width, width / 2
        if height is not None:
            return height * 2, height
        return default_width, default_height


def _root_of(node: Tag) -> Tag:
    root = node
    while root.parent is not None:
        root = root.parent
    return root
