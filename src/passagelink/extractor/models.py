"""
Data models for target extraction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from bs4.element import Tag

from ..dom.layout import BoundingBox


@dataclass(slots=True, frozen=True)
class ReadableContent:
    """Main-content subtree produced by a readability heuristic."""

    content: Tag
    length: int
    parser: str = ""


@dataclass(slots=True, frozen=True)
class Target:
    """One addressable passage of the page."""

    id: int
    text: str
    tag: str
    box: BoundingBox

    def __post_init__(self) -> None:
        if self.box.is_empty:
            raise ValueError("Target must have a non-zero rendered size")

    @property
    def top(self) -> float:
        return self.box.top

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "tag": self.tag, **self.box.to_dict()}
