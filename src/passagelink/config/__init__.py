"""Configuration models and loaders."""

from __future__ import annotations

from .config import (
    Config,
    EmbeddingSettings,
    ExtractionSettings,
    HighlightSettings,
    MatchingSettings,
    MonitoringConfig,
    SentenceFilterSettings,
    find_config_file,
    load_config,
)

__all__ = [
    "Config",
    "EmbeddingSettings",
    "ExtractionSettings",
    "HighlightSettings",
    "MatchingSettings",
    "MonitoringConfig",
    "SentenceFilterSettings",
    "find_config_file",
    "load_config",
]
