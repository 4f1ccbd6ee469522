"""
Data models for semantic matching.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union

TextId = Union[int, str]


class TextItem(Protocol):
    """Anything with an id and a text: key points and targets alike."""

    @property
    def id(self) -> Any: ...

    @property
    def text(self) -> str: ...


@dataclass(slots=True)
class Sentence:
    """A scored sentence candidate; ``order`` is its position in the target."""

    text: str
    score: float
    order: int


@dataclass(slots=True, frozen=True)
class ScoredSentence:
    text: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "score": self.score}


@dataclass(slots=True)
class TargetLink:
    """A target assigned to an anchor, with its relevant sentences."""

    id: Any
    text: str
    score: float
    cutoff: Optional[float] = None
    sentences: List[ScoredSentence] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "score": self.score,
            "cutoff": self.cutoff,
            "sentences": [sentence.to_dict() for sentence in self.sentences],
        }


@dataclass(slots=True)
class Match:
    """All links of one anchor (key point)."""

    id: Any
    text: str
    targets: List[TargetLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "targets": [link.to_dict() for link in self.targets]}


@dataclass(slots=True, frozen=True)
class MatchResult:
    """Outcome of one matching run; ``diagnostic`` explains an empty result."""

    matches: List[Match]
    diagnostic: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        return {"matches": [match.to_dict() for match in self.matches], "diagnostic": self.diagnostic}
