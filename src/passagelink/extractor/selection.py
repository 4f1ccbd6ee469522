"""
Greedy selection of high-priority elements from the readable subtree.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Sequence

import structlog
from bs4.element import Tag

from ..config.config import ExtractionSettings
from ..dom.document import HtmlDocument
from .statistics import SelectorStat, is_eligible_density, measure

logger = structlog.get_logger(__name__)


@dataclass
class SelectionResult:
    """Elements taken from the readable subtree, media first."""

    elements: List[Tag] = field(default_factory=list)
    accepted_selectors: int = 0
    text_ratio: float = 0.0
    skipped: List[str] = field(default_factory=list)


def is_media_sizable(document: HtmlDocument, element: Tag, settings: ExtractionSettings) -> bool:
    box = document.box(element)
    return box.width >= settings.sizable_media_width or box.height >= settings.sizable_media_height


def select_priority_targets(
    document: HtmlDocument,
    content: Tag,
    readable_length: int,
    stats: Sequence[SelectorStat],
    settings: ExtractionSettings,
) -> SelectionResult:
    """Take sizable media, then text selectors by descending priority.

    Accepted elements are detached from ``content`` so later selectors are
    measured on what remains. A selector whose current density drifted from
    its compiled density by more than ``density_change_threshold`` is skipped
    without spending the selector budget. Accepting a classed selector moves
    every pending selector sharing a class token to a queue that is drained
    before the budget is checked again.
    """
    result = SelectionResult()
    media_selectors: List[SelectorStat] = []
    text_selectors: List[SelectorStat] = []
    for stat in stats:
        if stat.tag in settings.media_tags:
            media_selectors.append(stat)
        elif is_eligible_density(stat.text_density, settings):
            text_selectors.append(stat)

    for stat in media_selectors:
        for media in [e for e in content.find_all(True) if stat.matches(e)]:
            if is_media_sizable(document, media, settings):
                result.elements.append(media)
                document.remove(media)
                stat.used = True

    pending = sorted(text_selectors, key=lambda s: s.priority, reverse=True)
    co_classed: Deque[SelectorStat] = deque()
    text_in_total = 0

    while True:
        more_room = (
            bool(pending)
            and result.text_ratio < settings.min_text_ratio
            and result.accepted_selectors < settings.max_selectors
        )
        if co_classed:
            current = co_classed.popleft()
        elif more_room:
            current = pending.pop(0)
        else:
            break

        elements = [e for e in content.find_all(True) if current.matches(e)]
        if not elements:
            continue

        count, updated_text = measure(elements)
        updated_density = updated_text / count
        change = abs((updated_density - current.text_density) / current.text_density)
        if change > settings.density_change_threshold:
            result.skipped.append(current.selector)
            logger.debug("Selector density drifted", selector=current.selector, change=round(change, 3))
            continue

        text_in_total += updated_text
        result.text_ratio = text_in_total / readable_length if readable_length else 1.0
        result.accepted_selectors += 1
        current.used = True
        for element in elements:
            result.elements.append(element)
            document.remove(element)

        if not current.key.is_classed:
            continue
        for other in list(pending):
            if other.key.is_classed and current.key.shares_class_with(other.key):
                co_classed.append(other)
                pending.remove(other)

    return result
