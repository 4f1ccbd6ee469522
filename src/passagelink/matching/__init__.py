"""Semantic matching of targets to key points."""

from __future__ import annotations

from .cutoff import compute_quantile, compute_sentence_cutoff, select_sentences
from .embeddings import (
    EmbeddingModelCache,
    EmbeddingProvider,
    SentenceTransformerEmbedder,
    load_sentence_transformer,
    shared_model_cache,
    to_matrix,
)
from .engine import SemanticMatcher
from .models import Match, MatchResult, ScoredSentence, Sentence, TargetLink
from .sentences import ABBREVIATIONS, SentenceSegmenter, ends_with_abbreviation

__all__ = [
    "compute_quantile",
    "compute_sentence_cutoff",
    "select_sentences",
    "EmbeddingModelCache",
    "EmbeddingProvider",
    "SentenceTransformerEmbedder",
    "load_sentence_transformer",
    "shared_model_cache",
    "to_matrix",
    "SemanticMatcher",
    "Match",
    "MatchResult",
    "ScoredSentence",
    "Sentence",
    "TargetLink",
    "ABBREVIATIONS",
    "SentenceSegmenter",
    "ends_with_abbreviation",
]
