"""
BeautifulSoup-backed document tree.

Elements are correlated across copies of the tree through an integer id stored
in the ``data-node-id`` attribute, assigned by :meth:`HtmlDocument.tag_nodes`.
"""

from __future__ import annotations

import copy
from typing import Callable, Dict, Iterable, Iterator, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .layout import EMPTY_BOX, BoundingBox, FlowLayout, Layout
from .walker import text_content

NODE_ID_ATTR = "data-node-id"

NodePredicate = Callable[[Tag], bool]


def node_id(node: Tag) -> Optional[int]:
    """Correlation id of ``node`` or ``None`` when it was never tagged."""
    value = node.get(NODE_ID_ATTR)
    if not isinstance(value, str):
        return None
    try:
        return int(value)
    except ValueError:
        return None


class HtmlDocument:
    """A parsed page plus the layout that measures it.

    A document returned by :meth:`clone` keeps a reference to its source and
    resolves geometry through correlation ids, since a copy is never laid out.
    """

    def __init__(self, soup: BeautifulSoup, layout: Layout | None = None, source: HtmlDocument | None = None) -> None:
        self.soup = soup
        self.layout: Layout = layout or FlowLayout()
        self.source = source
        self._index: Dict[int, Tag] | None = None

    @classmethod
    def from_html(cls, html: str, parser: str = "html.parser", layout: Layout | None = None) -> HtmlDocument:
        return cls(BeautifulSoup(html, parser), layout=layout)

    def __str__(self) -> str:
        return str(self.soup)

    @property
    def live(self) -> HtmlDocument:
        """The rendered document this one was copied from (itself if not a copy)."""
        return self.source.live if self.source is not None else self

    # --- querying ---

    def elements(self, predicate: NodePredicate | None = None, root: Tag | None = None) -> Iterator[Tag]:
        """Element nodes under ``root`` (default: whole page) in document order."""
        scope = self.soup if root is None else root
        for element in scope.descendants:
            if isinstance(element, Tag) and (predicate is None or predicate(element)):
                yield element

    def text_of(self, node: Tag) -> str:
        return text_content(node)

    def box(self, node: Tag) -> BoundingBox:
        live = self.live
        if live is self and _root_of(node) is self.soup:
            return self.layout.box(node)
        nid = node_id(node)
        counterpart = live.find_by_node_id(nid) if nid is not None else None
        if counterpart is None:
            return EMPTY_BOX
        return live.layout.box(counterpart)

    # --- mutation ---

    def clone(self) -> HtmlDocument:
        return HtmlDocument(copy.copy(self.soup), layout=self.layout, source=self)

    def remove(self, node: Tag) -> None:
        """Detach ``node`` from the tree, leaving it usable as a reference."""
        node.extract()

    # --- correlation ids ---

    def tag_nodes(self, admit: NodePredicate) -> int:
        """Assign ascending ids from 1 to every admitted element; returns the count."""
        for element in self.elements(lambda e: e.has_attr(NODE_ID_ATTR)):
            del element[NODE_ID_ATTR]
        index: Dict[int, Tag] = {}
        for element in self.elements(admit):
            nid = len(index) + 1
            element[NODE_ID_ATTR] = str(nid)
            index[nid] = element
        self._index = index
        return len(index)

    def clear_node_ids(self, keep: Iterable[Tag] = ()) -> None:
        """Remove correlation ids from every element not in ``keep``."""
        kept = {id(element) for element in keep}
        for element in list(self.elements(lambda e: e.has_attr(NODE_ID_ATTR))):
            if id(element) not in kept:
                del element[NODE_ID_ATTR]
        self._index = None

    def find_by_node_id(self, nid: int) -> Optional[Tag]:
        if self._index is None:
            self._index = {}
            for element in self.elements(lambda e: e.has_attr(NODE_ID_ATTR)):
                value = node_id(element)
                if value is not None:
                    self._index.setdefault(value, element)
        return self._index.get(nid)


def _root_of(node: Tag) -> Tag:
    root = node
    while root.parent is not None:
        root = root.parent
    return root
