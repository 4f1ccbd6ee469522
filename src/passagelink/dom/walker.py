"""
Tree traversal helpers shared by extraction and highlighting.
"""

from __future__ import annotations

import re
from typing import Callable, Iterator, Optional

from bs4.element import Comment, NavigableString, PageElement, PreformattedString, Tag

TextAdmission = Callable[[NavigableString], bool]

_NON_WHITESPACE = re.compile(r"[^\t\n\r ]")


def is_text_node(node: PageElement) -> bool:
    """True for character data that contributes to an element's text content."""
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def is_ignorable(node: PageElement) -> bool:
    """Comments and whitespace-only strings carry no highlightable text."""
    if isinstance(node, Comment):
        return True
    return is_text_node(node) and _NON_WHITESPACE.search(str(node)) is None


def iter_text_nodes(node: PageElement, admit: Optional[TextAdmission] = None) -> Iterator[NavigableString]:
    """Yield the text nodes under ``node`` in document order.

    ``admit`` narrows the walk; pass ``lambda n: not is_ignorable(n)`` to skip
    whitespace-only strings.
    """
    if is_text_node(node):
        if admit is None or admit(node):  # type: ignore[arg-type]
            yield node  # type: ignore[misc]
        return
    if not isinstance(node, Tag):
        return
    for descendant in node.descendants:
        if is_text_node(descendant) and (admit is None or admit(descendant)):  # type: ignore[arg-type]
            yield descendant  # type: ignore[misc]


def text_content(node: PageElement) -> str:
    """Concatenated raw text of ``node``, equivalent to the DOM ``textContent``."""
    return "".join(str(s) for s in iter_text_nodes(node))


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())
