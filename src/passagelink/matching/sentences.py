"""
Sentence segmentation with abbreviation-aware merging.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, List

import spacy

ABBREVIATIONS = frozenset(
    {"dr.", "mr.", "mrs.", "ms.", "prof.", "sr.", "jr.", "st.", "vs.", "etc.", "i.e.", "e.g.", "u.s."}
)

_LEADING_WRAPPERS = re.compile(r"^[\"'“”‘’(\[]+")
_TRAILING_WRAPPERS = re.compile(r"[\"'“”‘’)\]]+$")


@lru_cache(maxsize=8)
def _sentence_pipeline(language: str) -> Any:
    nlp = spacy.blank(language)
    nlp.add_pipe("sentencizer")
    return nlp


def ends_with_abbreviation(text: str) -> bool:
    """Whether the last whitespace-separated token is a known abbreviation."""
    tokens = text.split()
    if not tokens:
        return False
    last = _LEADING_WRAPPERS.sub("", tokens[-1])
    last = _TRAILING_WRAPPERS.sub("", last).lower()
    return last in ABBREVIATIONS


class SentenceSegmenter:
    """Locale-aware sentence splitter.

    Boundaries come from spaCy's rule-based ``sentencizer`` on a blank
    pipeline for ``language``; a segment ending in an abbreviation is merged
    with the segment that follows it.
    """

    def __init__(self, language: str = "en") -> None:
        self.language = language

    def segments(self, text: str) -> List[str]:
        """Raw sentence segments, before merging."""
        return [sent.text for sent in _sentence_pipeline(self.language)(text).sents]

    def split(self, text: str) -> List[str]:
        sentences: List[str] = []
        buffer = ""
        for segment in self.segments(text):
            trimmed = segment.strip()
            if not trimmed:
                continue
            candidate = f"{buffer} {trimmed}".strip() if buffer else trimmed
            if ends_with_abbreviation(candidate):
                buffer = candidate
                continue
            sentences.append(candidate)
            buffer = ""
        if buffer:
            sentences.append(buffer)
        return sentences
