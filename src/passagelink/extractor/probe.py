"""
Quick check whether a page carries enough article-like text to extract.
"""

from __future__ import annotations

import math
import re
from typing import Iterator, Set

from bs4.element import Tag

from ..dom.document import HtmlDocument
from ..dom.layout import parse_style

UNLIKELY_CANDIDATES = re.compile(
    r"-ad-|ai2html|banner|breadcrumbs|combx|comment|community|cover-wrap|disqus|extra|footer|gdpr|header|legends|"
    r"menu|related|remark|replies|rss|shoutbox|sidebar|skyscraper|social|sponsor|supplemental|ad-break|agegate|"
    r"pagination|pager|popup|yom-remote",
    re.IGNORECASE,
)
MAYBE_CANDIDATE = re.compile(r"and|article|body|column|content|main|shadow", re.IGNORECASE)


def is_node_visible(element: Tag) -> bool:
    style = parse_style(element.get("style"))
    if style.get("display") == "none" or element.has_attr("hidden"):
        return False
    classes = element.get("class") or []
    return element.get("aria-hidden") != "true" or "fallback-image" in " ".join(classes)


def _candidates(document: HtmlDocument) -> Iterator[Tag]:
    seen: Set[int] = set()
    for element in document.soup.find_all(["p", "pre", "article"]):
        seen.add(id(element))
        yield element
    for br in document.soup.select("div > br"):
        parent = br.parent
        if isinstance(parent, Tag) and id(parent) not in seen:
            seen.add(id(parent))
            yield parent


def is_probably_readerable(document: HtmlDocument, min_content_length: int = 140, min_score: float = 20) -> bool:
    """Sum ``sqrt(len - min_content_length)`` over long visible paragraphs.

    Paragraphs whose class/id look like page chrome, or that sit inside list
    items, do not count. Readerable once the score exceeds ``min_score``.
    """
    score = 0.0
    for node in _candidates(document):
        if not is_node_visible(node):
            continue
        match_string = " ".join(node.get("class") or []) + " " + str(node.get("id") or "")
        if UNLIKELY_CANDIDATES.search(match_string) and not MAYBE_CANDIDATE.search(match_string):
            continue
        if node.name == "p" and node.find_parent("li") is not None:
            continue
        length = len(node.get_text().strip())
        if length < min_content_length:
            continue
        score += math.sqrt(length - min_content_length)
        if score > min_score:
            return True
    return False
