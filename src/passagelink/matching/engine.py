"""
Semantic matching of extracted targets to summary key points.

Each target is assigned to the key point (anchor) its embedding is closest to.
Assigned targets are split into sentences, every sentence is scored against its
anchor, and an adaptive cutoff keeps the sentences worth highlighting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..config.config import MatchingSettings
from ..exceptions import EmbeddingDimensionMismatch, EmbeddingUnavailable
from .cutoff import select_sentences
from .embeddings import EmbeddingProvider, to_matrix
from .models import Match, MatchResult, Sentence, TargetLink, TextItem
from .sentences import SentenceSegmenter

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class _SentenceMeta:
    key: Tuple[Any, Any]
    anchor_index: int
    order: int


class SemanticMatcher:
    """Assigns targets to anchors and annotates links with sentence detail.

    Anchor, target and sentence embeddings are requested in three sequential
    batch calls. Data-shape problems never raise: they yield an empty
    :class:`MatchResult` with a diagnostic, or links without sentences when
    only the sentence stage fails.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        settings: MatchingSettings | None = None,
        segmenter: SentenceSegmenter | None = None,
    ) -> None:
        self.embedder = embedder
        self.settings = settings or MatchingSettings()
        self.segmenter = segmenter or SentenceSegmenter(self.settings.sentence_language)
        self.logger = logger.bind(component="SemanticMatcher")

    async def compute_matches(self, anchors: Sequence[TextItem], targets: Sequence[TextItem]) -> MatchResult:
        if not anchors:
            return self._empty("No anchors provided for similarity mapping.")
        if not targets:
            return self._empty("No targets provided for similarity mapping.")

        try:
            anchor_matrix = to_matrix(await self.embedder.embed([a.text or "" for a in anchors]))
            target_matrix = to_matrix(await self.embedder.embed([t.text or "" for t in targets]))
        except Exception as e:
            return self._empty(f"Embedding request failed: {e}", EmbeddingUnavailable.kind)

        if anchor_matrix is None or target_matrix is None:
            return self._empty("Missing embeddings for similarity mapping.", EmbeddingUnavailable.kind)
        if anchor_matrix.shape[1] != target_matrix.shape[1]:
            error = EmbeddingDimensionMismatch(anchor_matrix.shape[1], target_matrix.shape[1])
            return self._empty(str(error), error.kind)

        anchor_rows = self._usable_rows(anchor_matrix, len(anchors), "anchor")
        target_rows = self._usable_rows(target_matrix, len(targets), "target")

        links = self._assign_best_targets(
            anchors[:anchor_rows], targets[:target_rows], anchor_matrix[:anchor_rows], target_matrix[:target_rows]
        )
        await self._annotate_sentences(anchors[:anchor_rows], links, anchor_matrix[:anchor_rows])

        matches = self._rank(anchors, links)
        self.logger.info(
            "Computed semantic matches",
            anchors=len(anchors),
            targets=len(targets),
            linked=sum(len(match.targets) for match in matches),
        )
        return MatchResult(matches=matches)

    # --- stages ---

    def _usable_rows(self, matrix: np.ndarray, expected: int, label: str) -> int:
        if matrix.shape[0] != expected:
            self.logger.warning(
                "Embedding count mismatch", kind=label, expected=expected, received=int(matrix.shape[0])
            )
        return min(matrix.shape[0], expected)

    @staticmethod
    def _assign_best_targets(
        anchors: Sequence[TextItem],
        targets: Sequence[TextItem],
        anchor_matrix: np.ndarray,
        target_matrix: np.ndarray,
    ) -> Dict[int, List[TargetLink]]:
        """Each target goes to its highest-scoring anchor; ties go to the first."""
        links: Dict[int, List[TargetLink]] = {index: [] for index in range(len(anchors))}
        if not anchors:
            return links
        scores = target_matrix @ anchor_matrix.T
        best = np.argmax(scores, axis=1)
        for target_index, target in enumerate(targets):
            anchor_index = int(best[target_index])
            links[anchor_index].append(
                TargetLink(id=target.id, text=target.text, score=float(scores[target_index, anchor_index]))
            )
        return links

    async def _annotate_sentences(
        self,
        anchors: Sequence[TextItem],
        links: Dict[int, List[TargetLink]],
        anchor_matrix: np.ndarray,
    ) -> None:
        texts: List[str] = []
        metas: List[_SentenceMeta] = []
        for anchor_index, anchor in enumerate(anchors):
            for link in links.get(anchor_index, []):
                if not link.text:
                    continue
                key = (anchor.id, link.id)
                for order, sentence in enumerate(self.segmenter.split(link.text)):
                    if sentence:
                        texts.append(sentence)
                        metas.append(_SentenceMeta(key=key, anchor_index=anchor_index, order=order))
        if not texts:
            return

        try:
            sentence_matrix = to_matrix(await self.embedder.embed(texts))
        except Exception as e:
            self.logger.warning(
                "Failed to compute sentence embeddings", event_type=EmbeddingUnavailable.kind, error=str(e)
            )
            return
        if sentence_matrix is None or sentence_matrix.shape[1] != anchor_matrix.shape[1]:
            self.logger.warning("Sentence embeddings unavailable or mismatched", event_type="sentence_embeddings")
            return

        rows = min(sentence_matrix.shape[0], len(metas))
        if rows != len(metas):
            self.logger.warning("Sentence embedding count mismatch", expected=len(metas), received=rows)

        by_key: Dict[Tuple[Any, Any], List[Sentence]] = {}
        for row in range(rows):
            meta = metas[row]
            score = float(np.dot(anchor_matrix[meta.anchor_index], sentence_matrix[row]))
            by_key.setdefault(meta.key, []).append(Sentence(text=texts[row], score=score, order=meta.order))

        options = self.settings.sentence_filter.as_options()
        for anchor_index, anchor in enumerate(anchors):
            for link in links.get(anchor_index, []):
                sentences = by_key.get((anchor.id, link.id))
                if not sentences:
                    continue
                link.cutoff, link.sentences = select_sentences(sentences, options)

    def _rank(self, anchors: Sequence[TextItem], links: Dict[int, List[TargetLink]]) -> List[Match]:
        """Passing links by descending score, else the single best; truncated."""
        threshold = self.settings.similarity_threshold
        limit = self.settings.max_matches_per_anchor
        matches: List[Match] = []
        for anchor_index, anchor in enumerate(anchors):
            candidates = sorted(links.get(anchor_index, []), key=lambda link: link.score, reverse=True)
            passing = [link for link in candidates if link.score >= threshold]
            prioritized = passing if passing else candidates[:1]
            matches.append(Match(id=anchor.id, text=anchor.text, targets=prioritized[:limit]))
        return matches

    def _empty(self, reason: str, kind: Optional[str] = None) -> MatchResult:
        self.logger.warning("Semantic matching skipped", event_type=kind or "invalid_input", reason=reason)
        return MatchResult(matches=[], diagnostic=reason)
