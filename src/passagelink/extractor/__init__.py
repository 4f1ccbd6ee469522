"""Target extraction: selector statistics, greedy selection, back-mapping."""

from __future__ import annotations

from .engine import ExtractionReport, TargetExtractor
from .models import ReadableContent, Target
from .probe import is_probably_readerable
from .protocols import ReadabilityParser
from .readability import (
    CascadeReadabilityParser,
    ReadabilityLxmlParser,
    SoupFallbackParser,
    build_readability_parser,
)
from .selectors import ClassSentinel, SelectorKey, build_admission, class_signature
from .statistics import SelectorStat, compile_priority_stats, compute_priority

__all__ = [
    "ExtractionReport",
    "TargetExtractor",
    "ReadableContent",
    "Target",
    "is_probably_readerable",
    "ReadabilityParser",
    "CascadeReadabilityParser",
    "ReadabilityLxmlParser",
    "SoupFallbackParser",
    "build_readability_parser",
    "ClassSentinel",
    "SelectorKey",
    "build_admission",
    "class_signature",
    "SelectorStat",
    "compile_priority_stats",
    "compute_priority",
]
