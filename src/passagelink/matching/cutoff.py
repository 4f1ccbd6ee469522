"""
Adaptive per-target sentence cutoff.

The cutoff blends three views of a score set: a share of the best score, the
mean plus a multiple of the standard deviation, and a percentile it may never
exceed. The result is clamped to ``[min_score, max(scores)]``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import ScoredSentence, Sentence

DEFAULT_SENTENCE_FILTER_OPTIONS: Dict[str, float] = {
    "relative_weight": 0.8,
    "std_weight": 0.5,
    "percentile": 0.75,
    "min_score": -math.inf,
    "low_spread_window": 0.15,
    "low_spread_std_weight": 0.25,
    "small_sample_size": 3,
    "small_sample_relative_weight": 0.7,
}


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def compute_quantile(scores: Sequence[float], percentile: float) -> Optional[float]:
    """Linearly interpolated quantile; ``None`` for no scores or a non-finite percentile."""
    if not scores or not _finite(percentile):
        return None
    p = _clamp(percentile, 0.0, 1.0)
    if p == 0:
        return min(scores)
    if p == 1:
        return max(scores)
    ordered = sorted(scores)
    index = (len(ordered) - 1) * p
    lower = math.floor(index)
    upper = math.ceil(index)
    if lower == upper:
        return ordered[lower]
    fraction = index - lower
    return ordered[lower] * (1 - fraction) + ordered[upper] * fraction


@dataclass(frozen=True)
class CutoffOptions:
    """Sentence filter options after bounding and default substitution."""

    relative_weight: float
    std_weight: float
    percentile: float
    min_score: float
    low_spread_window: float
    low_spread_std_weight: float
    small_sample_size: int
    small_sample_relative_weight: float

    @classmethod
    def resolve(cls, options: Mapping[str, Any] | None = None) -> CutoffOptions:
        merged = {**DEFAULT_SENTENCE_FILTER_OPTIONS, **(options or {})}
        defaults = DEFAULT_SENTENCE_FILTER_OPTIONS

        def weight(name: str) -> float:
            value = merged[name]
            return _clamp(float(value), 0.0, 1.0) if _finite(value) else defaults[name]

        def non_negative(name: str) -> float:
            value = merged[name]
            return max(float(value), 0.0) if _finite(value) else defaults[name]

        small_sample = merged["small_sample_size"]
        return cls(
            relative_weight=weight("relative_weight"),
            std_weight=non_negative("std_weight"),
            percentile=merged["percentile"],
            min_score=merged["min_score"] if _finite(merged["min_score"]) else defaults["min_score"],
            low_spread_window=non_negative("low_spread_window"),
            low_spread_std_weight=non_negative("low_spread_std_weight"),
            small_sample_size=max(int(math.floor(small_sample)), 0) if _finite(small_sample) else 0,
            small_sample_relative_weight=weight("small_sample_relative_weight"),
        )


def compute_sentence_cutoff(scores: Sequence[float], options: Mapping[str, Any] | None = None) -> Optional[float]:
    """Cutoff for one target's sentence scores; ``None`` when there are no scores."""
    if not scores:
        return None
    opts = CutoffOptions.resolve(options)

    max_score = max(scores)
    min_observed = min(scores)
    mean = sum(scores) / len(scores)
    std = math.sqrt(sum((value - mean) ** 2 for value in scores) / len(scores))

    relative_weight = opts.relative_weight
    if 0 < opts.small_sample_size and len(scores) <= opts.small_sample_size:
        relative_weight = min(relative_weight, opts.small_sample_relative_weight)
    relative_cutoff = max_score * relative_weight

    stats_cutoff = mean + opts.std_weight * std
    if max_score - min_observed <= opts.low_spread_window:
        stats_cutoff = min(stats_cutoff, mean + opts.low_spread_std_weight * std)

    combined = (relative_cutoff + stats_cutoff) / 2
    percentile_cutoff = compute_quantile(scores, opts.percentile)
    if percentile_cutoff is not None and math.isfinite(percentile_cutoff):
        combined = min(combined, percentile_cutoff)

    combined = min(max(opts.min_score, combined), max_score)
    if not math.isfinite(combined):
        return max_score
    return combined


def select_sentences(
    sentences: Sequence[Sentence], options: Mapping[str, Any] | None = None
) -> Tuple[Optional[float], List[ScoredSentence]]:
    """Cutoff and the sentences scoring at or above it, in original order."""
    if not sentences:
        return None, []
    ordered = sorted(sentences, key=lambda sentence: sentence.order)
    cutoff = compute_sentence_cutoff([sentence.score for sentence in ordered], options)
    if cutoff is None:
        return None, []
    kept = [ScoredSentence(text=s.text, score=s.score) for s in ordered if s.score >= cutoff]
    return cutoff, kept
