"""Document tree, geometry and traversal utilities."""

from __future__ import annotations

from .document import NODE_ID_ATTR, HtmlDocument, node_id
from .layout import EMPTY_BOX, BoundingBox, FlowLayout, Layout, StaticLayout
from .walker import collapse_whitespace, is_ignorable, is_text_node, iter_text_nodes, text_content

__all__ = [
    "NODE_ID_ATTR",
    "HtmlDocument",
    "node_id",
    "EMPTY_BOX",
    "BoundingBox",
    "FlowLayout",
    "Layout",
    "StaticLayout",
    "collapse_whitespace",
    "is_ignorable",
    "is_text_node",
    "iter_text_nodes",
    "text_content",
]
