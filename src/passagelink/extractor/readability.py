"""
Readability heuristics producing the main-content subtree of a page.
"""

from __future__ import annotations

import copy
from typing import Dict, List, Sequence

import structlog
from bs4 import BeautifulSoup
from bs4.element import Tag

from ..config.config import ExtractionSettings
from ..dom.document import HtmlDocument
from ..dom.walker import text_content
from .models import ReadableContent
from .protocols import ReadabilityParser

logger = structlog.get_logger(__name__)

# Import with graceful fallback
try:
    from readability import Document  # type: ignore[import-not-found]

    HAS_READABILITY = True
except ImportError:
    Document = None
    HAS_READABILITY = False


class ReadabilityLxmlParser:
    """Main content via readability-lxml's ``Document.summary``.

    The summary keeps ``class`` and ``data-node-id`` attributes, so selected
    elements can be correlated back to the live page.
    """

    name = "readability"

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser
        self.config = {
            "min_text_length": 25,
            "retry_length": 250,
            "positive_keywords": ["article", "body", "content", "entry", "main", "page", "post", "text", "story"],
            "negative_keywords": [
                "combx",
                "comment",
                "contact",
                "footer",
                "footnote",
                "masthead",
                "outbrain",
                "promo",
                "related",
                "shoutbox",
                "sidebar",
                "sponsor",
                "widget",
            ],
        }

    def parse(self, document: HtmlDocument) -> ReadableContent:
        if not HAS_READABILITY or Document is None:
            raise RuntimeError("readability-lxml is not installed")

        doc = Document(
            str(document.soup),
            min_text_length=self.config["min_text_length"],
            retry_length=self.config["retry_length"],
            positive_keywords=self.config["positive_keywords"],
            negative_keywords=self.config["negative_keywords"],
        )
        summary = doc.summary(html_partial=True)
        content = BeautifulSoup(summary, self.parser)
        return ReadableContent(content=content, length=len(text_content(content)), parser=self.name)


class SoupFallbackParser:
    """Main content by well-known container selectors after dropping chrome."""

    name = "soup_fallback"

    def __init__(self) -> None:
        self.config: Dict[str, List[str]] = {
            "content_selectors": [
                "main",
                "article",
                ".content",
                "#content",
                ".post",
                ".entry",
                ".article-body",
                '[role="main"]',
                ".main-content",
                ".post-content",
                ".entry-content",
            ],
            "remove_tags": ["script", "style", "nav", "header", "footer", "aside", "noscript", "form"],
            "remove_classes": ["nav", "navigation", "menu", "sidebar", "ad", "advertisement", "footer", "header"],
        }

    def parse(self, document: HtmlDocument) -> ReadableContent:
        soup = copy.copy(document.soup)

        for tag_name in self.config["remove_tags"]:
            for tag in soup.find_all(tag_name):
                if not tag.decomposed:
                    tag.decompose()

        for class_name in self.config["remove_classes"]:
            for element in soup.find_all(class_=class_name):
                if not element.decomposed:
                    element.decompose()

        main_content = self._find_main_content(soup)
        return ReadableContent(content=main_content, length=len(text_content(main_content)), parser=self.name)

    def _find_main_content(self, soup: BeautifulSoup) -> Tag:
        for selector in self.config["content_selectors"]:
            if selector.startswith("."):
                element = soup.find(class_=selector[1:])
            elif selector.startswith("#"):
                element = soup.find(id=selector[1:])
            elif selector == '[role="main"]':
                element = soup.find(attrs={"role": "main"})
            else:
                element = soup.find(selector)
            if isinstance(element, Tag):
                return element
        body = soup.find("body")
        return body if isinstance(body, Tag) else soup


class CascadeReadabilityParser:
    """Tries parsers in order; the first reaching ``min_length`` wins.

    A parser that raises counts as a result of length 0. When no parser
    reaches the minimum, the longest result is returned so the caller can
    report the shortfall.
    """

    name = "cascade"

    def __init__(self, parsers: Sequence[ReadabilityParser], min_length: int) -> None:
        if not parsers:
            raise ValueError("At least one readability parser is required")
        self.parsers = list(parsers)
        self.min_length = min_length
        self.logger = logger.bind(component="CascadeReadabilityParser")

    def parse(self, document: HtmlDocument) -> ReadableContent:
        best: ReadableContent | None = None
        for parser in self.parsers:
            try:
                result = parser.parse(document)
            except Exception as e:
                self.logger.warning("Readability parser failed", parser=parser.name, error=str(e))
                continue

            self.logger.debug("Readability parser finished", parser=parser.name, length=result.length)
            if result.length >= self.min_length:
                return result
            if best is None or result.length > best.length:
                best = result

        if best is None:
            return ReadableContent(content=BeautifulSoup("", "html.parser"), length=0, parser=self.name)
        return best


def build_readability_parser(settings: ExtractionSettings) -> CascadeReadabilityParser:
    """Cascade in ``settings.readability_order``, skipping unavailable parsers."""
    available: Dict[str, ReadabilityParser] = {
        "soup_fallback": SoupFallbackParser(),
    }
    if HAS_READABILITY:
        available["readability"] = ReadabilityLxmlParser(parser=settings.parser)

    parsers: List[ReadabilityParser] = []
    for name in settings.readability_order:
        if name in available:
            parsers.append(available[name])
        else:
            logger.info("Readability parser unavailable", parser=name)
    if not parsers:
        parsers.append(available["soup_fallback"])
    return CascadeReadabilityParser(parsers, min_length=settings.min_content_length)
