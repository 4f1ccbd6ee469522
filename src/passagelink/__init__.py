"""
PassageLink - links the key points of a streamed summary back to the page
passages they were drawn from, and highlights the supporting sentences.
"""

from __future__ import annotations

__version__ = "0.1.0"

from passagelink.config import Config, load_config
from passagelink.dom import HtmlDocument
from passagelink.extractor import Target, TargetExtractor
from passagelink.highlight import Highlighter
from passagelink.matching import MatchResult, SemanticMatcher, SentenceTransformerEmbedder
from passagelink.pipeline import LinkingSession, ReplaySummarizer, SessionStage, Summarizer
from passagelink.stream import KeyPointEntry, KeyPointStream, create_key_point_stream

__all__ = [
    "__version__",
    "Config",
    "load_config",
    "HtmlDocument",
    "Target",
    "TargetExtractor",
    "Highlighter",
    "MatchResult",
    "SemanticMatcher",
    "SentenceTransformerEmbedder",
    "LinkingSession",
    "ReplaySummarizer",
    "SessionStage",
    "Summarizer",
    "KeyPointEntry",
    "KeyPointStream",
    "create_key_point_stream",
]
