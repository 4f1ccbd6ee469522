"""
Protocols for pluggable readability heuristics.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..dom.document import HtmlDocument
from .models import ReadableContent


@runtime_checkable
class ReadabilityParser(Protocol):
    """Boilerplate-removal strategy returning the main-content subtree."""

    name: str

    def parse(self, document: HtmlDocument) -> ReadableContent:
        """Parse the main content out of ``document``.

        Args:
            document: Working copy of the page; it may be modified.

        Returns:
            ReadableContent whose ``content`` keeps class and ``data-node-id``
            attributes of the surviving elements.
        """
        ...
