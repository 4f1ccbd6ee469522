"""
Selector statistics and the density-based priority function.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from bs4.element import Tag

from ..config.config import ExtractionSettings
from ..dom.walker import text_content
from .selectors import ClassSignature, NodePredicate, SelectorKey, class_signature


@dataclass
class SelectorStat:
    """Aggregates of one tag/class combination inside the readable subtree."""

    key: SelectorKey
    class_signature: ClassSignature
    count: int = 0
    text_included: int = 0
    text_density: float = 0.0
    priority: float = 0.0
    used: bool = False
    matches: NodePredicate = field(default=lambda element: False, repr=False, compare=False)

    @property
    def tag(self) -> str:
        return self.key.tag

    @property
    def selector(self) -> str:
        return self.key.render()

    def to_dict(self) -> Dict[str, object]:
        return {
            "selector": self.selector,
            "tag": self.tag,
            "class_signature": (
                self.class_signature if isinstance(self.class_signature, str) else self.class_signature.value
            ),
            "count": self.count,
            "text_included": self.text_included,
            "text_density": self.text_density,
            "priority": self.priority,
            "used": self.used,
        }


@dataclass(frozen=True)
class DensityStatistics:
    """Count-weighted mean and population std of eligible selector densities."""

    mean: float
    std: float
    eligible: int


def is_eligible_density(density: float, settings: ExtractionSettings) -> bool:
    return settings.min_text_density < density < settings.max_text_density


def collect_selectors(elements: Iterable[Tag], admit: NodePredicate) -> Dict[SelectorKey, SelectorStat]:
    """One stat per distinct key, in order of first appearance."""
    stats: Dict[SelectorKey, SelectorStat] = {}
    for element in elements:
        key = SelectorKey.of(element)
        if key not in stats:
            stats[key] = SelectorStat(key=key, class_signature=class_signature(element), matches=key.matcher(admit))
    return stats


def measure(elements: Iterable[Tag]) -> Tuple[int, int]:
    """Element count and summed text length."""
    count = 0
    text_included = 0
    for element in elements:
        count += 1
        text_included += len(text_content(element))
    return count, text_included


def density_statistics(stats: Iterable[SelectorStat], settings: ExtractionSettings) -> Optional[DensityStatistics]:
    eligible = [stat for stat in stats if is_eligible_density(stat.text_density, settings)]
    total_count = sum(stat.count for stat in eligible)
    if not eligible or total_count == 0:
        return None
    mean = sum(stat.text_included for stat in eligible) / total_count
    variance = sum((mean - stat.text_density) ** 2 * stat.count for stat in eligible) / total_count
    return DensityStatistics(mean=mean, std=math.sqrt(variance), eligible=len(eligible))


def compute_priority(
    text_included: float,
    text_density: float,
    readable_length: float,
    mean: float,
    std: float,
    settings: ExtractionSettings,
) -> float:
    """Weighted sum of the text inclusion ratio and a gaussian on density.

    The gaussian peaks when ``text_density`` sits at ``mean`` (shifted by
    ``epsilon``); ``epsilon`` also keeps the width positive when ``std`` is 0.
    """
    eps = settings.epsilon
    density_gaussian = math.exp(-((text_density - mean + eps) ** 2) / (2 * (std + eps) ** 2))
    return inclusion_score(text_included, readable_length, settings) + settings.text_density_weight * density_gaussian


def inclusion_score(text_included: float, readable_length: float, settings: ExtractionSettings) -> float:
    inclusion_ratio = text_included / readable_length if readable_length else 0.0
    return settings.text_inclusion_weight * inclusion_ratio


def compile_priority_stats(
    content: Tag,
    readable_length: int,
    admit: NodePredicate,
    settings: ExtractionSettings,
) -> Tuple[List[SelectorStat], Optional[DensityStatistics]]:
    """Build, measure and rank the selectors of a readable subtree.

    Returns the stats sorted by descending priority and the density statistics,
    which are ``None`` when no selector falls inside the eligible density band;
    in that case priorities carry the inclusion term only.
    """
    elements = [element for element in content.find_all(True) if admit(element)]
    stats = collect_selectors(elements, admit)

    for stat in stats.values():
        stat.count, stat.text_included = measure(e for e in content.find_all(True) if stat.matches(e))
        stat.text_density = stat.text_included / stat.count if stat.count else 0.0

    density = density_statistics(stats.values(), settings)
    for stat in stats.values():
        if density is None:
            stat.priority = inclusion_score(stat.text_included, readable_length, settings)
        else:
            stat.priority = compute_priority(
                stat.text_included, stat.text_density, readable_length, density.mean, density.std, settings
            )

    ranked = sorted(stats.values(), key=lambda stat: stat.priority, reverse=True)
    return ranked, density
