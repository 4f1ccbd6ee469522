"""
Session orchestration: extract targets, summarize them, link key points back.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from .config.config import Config
from .dom.document import HtmlDocument
from .exceptions import PassageLinkError
from .extractor.engine import TargetExtractor
from .extractor.models import Target
from .highlight.highlighter import Highlighter, HighlightOutcome
from .matching.embeddings import EmbeddingProvider, SentenceTransformerEmbedder
from .matching.engine import SemanticMatcher
from .matching.models import MatchResult
from .stream.keypoints import KeyPointEntry, UpdateCallback, consume_stream

logger = structlog.get_logger(__name__)


class SessionStage(Enum):
    """What the session is busy with."""

    IDLE = "idle"
    EXTRACTING = "requesting contents"
    SUMMARIZING = "generating summaries"
    LINKING = "finding relevant sources"


@runtime_checkable
class Summarizer(Protocol):
    """Produces a streaming summary of a text."""

    def summarize_streaming(self, text: str) -> AsyncIterator[str]:
        """Yield summary chunks; key points are separated by ``*``."""
        ...


class ReplaySummarizer:
    """Replays a prepared summary in fixed-size chunks."""

    def __init__(self, summary: str, chunk_size: int = 16, delay: float = 0.0) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.summary = summary
        self.chunk_size = chunk_size
        self.delay = delay

    async def summarize_streaming(self, text: str) -> AsyncIterator[str]:
        for start in range(0, len(self.summary), self.chunk_size):
            await asyncio.sleep(self.delay)
            yield self.summary[start : start + self.chunk_size]


class SessionState(BaseModel):
    """Serializable snapshot of a linking session."""

    stage: str = Field(..., description="Current session stage")
    extractable: Optional[bool] = Field(default=None, description="Readerable probe result")
    diagnostic: Optional[str] = Field(default=None, description="Why the last step produced nothing")
    run_id: int = Field(ge=0, description="Number of linking runs started")
    targets: List[Dict[str, Any]] = Field(default_factory=list)
    key_points: List[Dict[str, Any]] = Field(default_factory=list)
    matches: List[Dict[str, Any]] = Field(default_factory=list)


class LinkingSession:
    """Holds one page's targets, key points and matches.

    Each linking run replaces the previous matches wholesale. A run that is
    superseded by a newer one while it awaits embeddings is discarded.
    """

    def __init__(
        self,
        document: HtmlDocument,
        config: Config | None = None,
        embedder: EmbeddingProvider | None = None,
        summarizer: Summarizer | None = None,
    ) -> None:
        self.document = document
        self.config = config or Config()
        self.summarizer = summarizer
        self.extractor = TargetExtractor(self.config.extraction)
        self.matcher = SemanticMatcher(embedder or SentenceTransformerEmbedder(self.config.embedding), self.config.matching)
        self.highlighter = Highlighter(document, self.config.highlight)

        self.stage = SessionStage.IDLE
        self.extractable: Optional[bool] = None
        self.diagnostic: Optional[str] = None
        self.targets: List[Target] = []
        self.key_points: List[KeyPointEntry] = []
        self.matches = MatchResult(matches=[])
        self._run_id = 0
        self.logger = logger.bind(component="LinkingSession")

    def extract(self) -> List[Target]:
        self.stage = SessionStage.EXTRACTING
        try:
            self.extractable = self.extractor.is_extractable(self.document)
            if not self.extractable:
                self.targets = []
                self.diagnostic = "not_extractable"
                self.logger.info("Page does not have enough readable content", event_type=self.diagnostic)
                return self.targets

            targets = self.extractor.find_targets(self.document)
            self.targets = targets or []
            self.diagnostic = None if targets else self.extractor.last_report.diagnostic
            return self.targets
        finally:
            self.stage = SessionStage.IDLE

    def full_text(self) -> str:
        return "\n\n".join(target.text for target in self.targets if target.text)

    async def summarize(self, on_update: Optional[UpdateCallback] = None) -> List[KeyPointEntry]:
        if self.summarizer is None:
            raise PassageLinkError("No summarizer configured for this session")
        self.stage = SessionStage.SUMMARIZING
        try:
            self.key_points = await consume_stream(self.summarizer.summarize_streaming(self.full_text()), on_update)
        finally:
            self.stage = SessionStage.IDLE
        self.logger.info("Summarized targets", key_points=len(self.key_points))
        return self.key_points

    async def link(self) -> Optional[MatchResult]:
        """Match key points to targets; ``None`` if a newer run superseded this one."""
        self._run_id += 1
        run_id = self._run_id
        anchors = list(self.key_points)
        targets = [target for target in self.targets if target.text]

        self.stage = SessionStage.LINKING
        with structlog.contextvars.bound_contextvars(run_id=run_id):
            try:
                result = await self.matcher.compute_matches(anchors, targets)
            finally:
                if run_id == self._run_id:
                    self.stage = SessionStage.IDLE

            if run_id != self._run_id:
                self.logger.info("Discarded stale linking run", latest=self._run_id)
                return None

            self.matches = result
            self.diagnostic = result.diagnostic
            return result

    async def run(self, on_update: Optional[UpdateCallback] = None) -> Optional[MatchResult]:
        """Extract, summarize and link in one go."""
        if not self.extract():
            self.matches = MatchResult(matches=[], diagnostic=self.diagnostic)
            return self.matches
        await self.summarize(on_update)
        return await self.link()

    def put_highlight(self, target_id: int | str, sentences: Iterable[Any]) -> HighlightOutcome:
        return self.highlighter.put_highlight(target_id, sentences)

    def dim_highlight(self) -> int:
        return self.highlighter.dim_highlight()

    def state(self) -> SessionState:
        return SessionState(
            stage=self.stage.value,
            extractable=self.extractable,
            diagnostic=self.diagnostic,
            run_id=self._run_id,
            targets=[target.to_dict() for target in self.targets],
            key_points=[entry.to_dict() for entry in self.key_points],
            matches=[match.to_dict() for match in self.matches.matches],
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.state().model_dump()
