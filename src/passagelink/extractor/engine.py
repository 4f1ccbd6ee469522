"""
Target extraction engine.

Selects the content-bearing elements of a page by ranking tag/class
combinations of its readable subtree on text mass and text density, then maps
the chosen elements back onto the live page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog
from bs4.element import Tag

from ..config.config import ExtractionSettings
from ..dom.document import NODE_ID_ATTR, HtmlDocument, node_id
from ..dom.walker import collapse_whitespace
from ..exceptions import InsufficientContent, NoEligibleSelectors
from .models import Target
from .probe import is_probably_readerable
from .protocols import ReadabilityParser
from .readability import build_readability_parser
from .selection import is_media_sizable, select_priority_targets
from .selectors import build_admission, is_media_tag
from .statistics import SelectorStat, compile_priority_stats

logger = structlog.get_logger(__name__)


@dataclass
class ExtractionReport:
    """What the last extraction run saw, for inspection and the CLI."""

    readable_length: int = 0
    parser: str = ""
    stats: List[SelectorStat] = field(default_factory=list)
    selected: int = 0
    mapped: int = 0
    media_backfilled: int = 0
    diagnostic: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "readable_length": self.readable_length,
            "parser": self.parser,
            "selected": self.selected,
            "mapped": self.mapped,
            "media_backfilled": self.media_backfilled,
            "diagnostic": self.diagnostic,
            "selectors": [stat.to_dict() for stat in self.stats],
        }


class TargetExtractor:
    """Finds the ordered list of targets of a page.

    ``find_targets`` only writes to the live page to set and clear the
    ``data-node-id`` correlation attribute; the ids of returned targets are
    left in place so targets can be found again for highlighting.
    """

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        readability: ReadabilityParser | None = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.readability = readability or build_readability_parser(self.settings)
        self.admit = build_admission(self.settings)
        self.logger = logger.bind(component="TargetExtractor")
        self.last_report = ExtractionReport()

    def is_extractable(self, document: HtmlDocument) -> bool:
        return is_probably_readerable(document, min_content_length=self.settings.min_content_length)

    def find_targets(self, document: HtmlDocument) -> Optional[List[Target]]:
        """Run the extraction; ``None`` means the page has no usable targets."""
        settings = self.settings
        report = ExtractionReport()
        self.last_report = report

        # Correlation ids, then a working copy without non-content tags
        tagged = document.tag_nodes(self.admit)
        working = document.clone()
        removable = frozenset(settings.removable_tags)
        for element in list(working.elements(lambda e: e.name.upper() in removable)):
            working.remove(element)

        readable = self.readability.parse(working)
        report.readable_length = readable.length
        report.parser = readable.parser
        if readable.length < settings.min_content_length:
            return self._no_result(
                document,
                report,
                InsufficientContent(f"Readable length {readable.length} below {settings.min_content_length}"),
            )

        stats, density = compile_priority_stats(readable.content, readable.length, self.admit, settings)
        report.stats = stats
        if density is None:
            band = (settings.min_text_density, settings.max_text_density)
            self._diagnose(report, NoEligibleSelectors(f"No selector density inside {band}"))
        else:
            self.logger.debug(
                "Compiled selector statistics",
                selectors=len(stats),
                eligible=density.eligible,
                mean_density=round(density.mean, 2),
                std_density=round(density.std, 2),
            )

        selection = select_priority_targets(working, readable.content, readable.length, stats, settings)
        report.selected = len(selection.elements)
        if report.selected < settings.min_targets:
            return self._no_result(document, report, InsufficientContent(f"Selected {report.selected} elements"))

        targets = self._match_live_targets(document, selection.elements, stats)
        report.mapped = len(targets)
        if report.mapped < settings.min_targets:
            return self._no_result(document, report, InsufficientContent(f"Mapped {report.mapped} elements"))

        missing_media = self._find_missing_media(document, targets)
        report.media_backfilled = len(missing_media)
        merged = self._sort_by_top(document, targets + missing_media)

        final = [e for e in merged if len(document.text_of(e)) <= settings.max_text_per_target]
        if len(final) < settings.min_targets:
            return self._no_result(document, report, InsufficientContent(f"{len(final)} targets after size cap"))

        document.clear_node_ids(keep=final)
        result = [self._to_target(document, element) for element in final]
        self.logger.info(
            "Extracted targets",
            tagged=tagged,
            readable_length=readable.length,
            parser=readable.parser,
            accepted_selectors=selection.accepted_selectors,
            text_ratio=round(selection.text_ratio, 3),
            targets=len(result),
        )
        return result

    # --- back-mapping ---

    def _match_live_targets(
        self, document: HtmlDocument, selected: Sequence[Tag], stats: Sequence[SelectorStat]
    ) -> List[Tag]:
        selected_ids = set()
        for element in selected:
            nid = node_id(element)
            if nid is not None:
                selected_ids.add(nid)

        mapped = list(document.elements(lambda e: node_id(e) in selected_ids))
        mapped_keys = {id(e) for e in mapped}

        # Used selectors also recover elements the readable copy lost
        recovered: Dict[int, Tag] = {}
        for stat in stats:
            if not stat.used:
                continue
            for element in document.elements(stat.matches):
                if id(element) not in mapped_keys:
                    recovered.setdefault(id(element), element)

        # A recovered element never replaces or splits a mapped one
        extra = [e for e in recovered.values() if not any(_is_related(e, m) for m in mapped)]

        kept = _drop_nested([e for e in mapped if self._is_live_target(document, e)])
        kept += _drop_enclosing([e for e in extra if self._is_live_target(document, e)])
        return self._sort_by_top(document, kept)

    def _is_live_target(self, document: HtmlDocument, element: Tag) -> bool:
        return (
            node_id(element) is not None
            and not document.box(element).is_empty
            and (is_media_tag(element, self.settings) or bool(document.text_of(element)))
        )

    def _find_missing_media(self, document: HtmlDocument, targets: Sequence[Tag]) -> List[Tag]:
        if not targets:
            return []
        settings = self.settings
        media = [e for e in document.elements(self.admit) if is_media_tag(e, settings)]
        keywords = settings.media_iframe_keywords
        for iframe in document.soup.find_all("iframe"):
            attributes = _attribute_string(iframe).upper()
            if is_media_sizable(document, iframe, settings) and any(keyword in attributes for keyword in keywords):
                media.append(iframe)

        chosen = {id(e) for e in targets}
        top = document.box(targets[0]).top
        bottom = document.box(targets[-1]).bottom
        missing: List[Tag] = []
        for element in media:
            if id(element) in chosen or node_id(element) is None:
                continue
            box = document.box(element)
            if box.is_empty or not is_media_sizable(document, element, settings):
                continue
            if not (box.bottom >= top and box.top <= bottom):
                continue
            if any(_is_related(element, target) for target in targets):
                continue
            chosen.add(id(element))
            missing.append(element)
        return missing

    # --- helpers ---

    @staticmethod
    def _sort_by_top(document: HtmlDocument, elements: Sequence[Tag]) -> List[Tag]:
        return sorted(elements, key=lambda e: document.box(e).top)

    def _to_target(self, document: HtmlDocument, element: Tag) -> Target:
        nid = node_id(element)
        if nid is None:
            raise ValueError(f"Target <{element.name}> lost its {NODE_ID_ATTR} attribute")
        return Target(
            id=nid,
            text=collapse_whitespace(document.text_of(element)),
            tag=element.name.upper(),
            box=document.box(element),
        )

    def _diagnose(self, report: ExtractionReport, error: Exception) -> None:
        kind = getattr(error, "kind", type(error).__name__)
        report.diagnostic = kind
        self.logger.info("Extraction diagnostic", event_type=kind, detail=str(error))

    def _no_result(self, document: HtmlDocument, report: ExtractionReport, error: Exception) -> None:
        self._diagnose(report, error)
        document.clear_node_ids()
        return None


def _attribute_string(element: Tag) -> str:
    parts = []
    for name, value in element.attrs.items():
        if isinstance(value, list):
            value = " ".join(value)
        parts.append(f'{name}="{value}"')
    return " ".join(parts)


def _is_related(a: Tag, b: Tag) -> bool:
    """Whether one element contains the other."""
    return any(parent is b for parent in a.parents) or any(parent is a for parent in b.parents)


def _drop_nested(elements: List[Tag]) -> List[Tag]:
    """Keep the outermost element wherever candidates nest."""
    ids = {id(e) for e in elements}
    return [e for e in elements if not any(id(parent) in ids for parent in e.parents)]


def _drop_enclosing(elements: List[Tag]) -> List[Tag]:
    """Keep the innermost element wherever candidates nest."""
    ids = {id(e) for e in elements}
    enclosing = {id(parent) for e in elements for parent in e.parents if id(parent) in ids}
    return [e for e in elements if id(e) not in enclosing]
