"""
Configuration management for passagelink using Pydantic.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, List, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Nested Configuration Models ---


class ExtractionSettings(BaseModel):
    """Thresholds and tag sets driving target extraction."""

    parser: str = Field(default="html.parser", description="BeautifulSoup tree builder.")
    readability_order: List[Literal["readability", "soup_fallback"]] = Field(
        default=["readability", "soup_fallback"],
        description="Order of readability parsers to try.",
    )

    # readability
    min_content_length: int = Field(default=100, ge=0, description="Minimum readable text length.")

    # selector priority function
    min_text_density: float = Field(default=50, ge=0)
    max_text_density: float = Field(default=1500, gt=0)
    text_inclusion_weight: float = Field(default=0.5, ge=0)
    text_density_weight: float = Field(default=0.5, ge=0)
    epsilon: float = Field(default=0.01, gt=0, description="Keeps the density gaussian finite.")

    # greedy selection
    min_text_ratio: float = Field(
        default=0.95, gt=0, le=1, description="Stop once this share of readable text is covered."
    )
    max_selectors: int = Field(default=10, gt=0, description="Maximum number of accepted text selectors.")
    density_change_threshold: float = Field(default=0.5, ge=0)

    # final thresholds
    max_text_per_target: int = Field(default=3000, gt=0)
    min_targets: int = Field(default=1, ge=0)

    # media
    media_tags: List[str] = Field(default=["IMG", "SVG", "VIDEO", "PRE", "FIGURE"])
    sizable_media_width: float = Field(default=200, ge=0)
    sizable_media_height: float = Field(default=200, ge=0)
    media_iframe_keywords: List[str] = Field(default=["CHART", "DWCDN", "YOUTUBE", "TWITTER", "INSTAGRAM"])

    # tagging pass exclusions
    ignored_classes: List[str] = Field(default=["LPR__ignore"])
    ignored_ids: List[str] = Field(default=["readability-content", "readability-page-1"])
    ignored_tags: List[str] = Field(
        default=[
            # oversized containers
            "HTML",
            "BODY",
            "HEAD",
            # structural containers
            "HEADER",
            "FOOTER",
            "NAV",
            "ASIDE",
            "MAIN",
            "SECTION",
            # inline or too small
            "A",
            "DT",
            "DD",
            "SPAN",
            # list containers
            "UL",
            "OL",
            "DL",
            # table structure
            "TABLE",
            "THEAD",
            "TBODY",
            "TFOOT",
            "TR",
        ]
    )
    removable_tags: List[str] = Field(
        default=[
            # invisible
            "SCRIPT",
            "STYLE",
            "NOSCRIPT",
            # forms
            "BR",
            "HR",
            "INPUT",
            "BUTTON",
            "SELECT",
            "OPTION",
            "TEXTAREA",
            "LABEL",
            "IFRAME",
            # metadata
            "META",
            "LINK",
            "TITLE",
            "BASE",
            # structure only
            "COL",
            "COLGROUP",
            "WBR",
            # svg internals
            "PATH",
            "G",
            "DEFS",
            "USE",
            "SYMBOL",
            # embeds
            "OBJECT",
            "EMBED",
            "PARAM",
            # media metadata
            "SOURCE",
            "TRACK",
            "AREA",
            "MAP",
            # templates
            "TEMPLATE",
            "SLOT",
            # graphics and widgets
            "CANVAS",
            "METER",
            "PROGRESS",
            "DIALOG",
            "DATALIST",
            "OPTGROUP",
        ]
    )

    @field_validator("media_tags", "ignored_tags", "removable_tags", "media_iframe_keywords")
    @classmethod
    def uppercase(cls, v: List[str]) -> List[str]:
        """Tag names and keywords are compared upper-cased."""
        return [item.upper() for item in v]

    @field_validator("readability_order")
    @classmethod
    def validate_readability_order(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("readability_order must contain at least one parser")
        return v

    @model_validator(mode="after")
    def validate_density_band(self) -> "ExtractionSettings":
        if self.min_text_density >= self.max_text_density:
            raise ValueError("min_text_density must be lower than max_text_density")
        return self


class SentenceFilterSettings(BaseModel):
    """Options of the adaptive per-target sentence cutoff."""

    relative_weight: float = Field(default=0.8, description="Share of the top sentence score for the relative cutoff.")
    std_weight: float = Field(default=0.5, description="Standard deviation multiplier of the statistical cutoff.")
    percentile: float = Field(default=0.75, ge=0, le=1, description="Quantile the cutoff may never exceed.")
    min_score: float = Field(default=-math.inf, description="Lower bound of the cutoff.")
    low_spread_window: float = Field(default=0.15, description="Score range treated as tightly clustered.")
    low_spread_std_weight: float = Field(default=0.25, description="Std weight used for clustered scores.")
    small_sample_size: int = Field(default=3, description="Sentence count that triggers the small-sample weight.")
    small_sample_relative_weight: float = Field(default=0.7, description="Relative weight for small samples.")

    def as_options(self) -> dict[str, Any]:
        return self.model_dump()


class MatchingSettings(BaseModel):
    """Configuration for key point to target matching."""

    similarity_threshold: float = Field(default=0.5, description="Minimum link score kept per anchor.")
    max_matches_per_anchor: int = Field(default=3, gt=0)
    sentence_language: str = Field(default="en", description="spaCy language code for sentence segmentation.")
    sentence_filter: SentenceFilterSettings = Field(default_factory=SentenceFilterSettings)


class EmbeddingSettings(BaseModel):
    """Configuration of the sentence embedding model."""

    model_name: str = Field(default="all-MiniLM-L6-v2")
    device: Literal["auto", "cpu", "cuda"] = Field(default="auto")
    batch_size: int = Field(default=64, gt=0)


class HighlightSettings(BaseModel):
    """Configuration for snippet location and marking."""

    marker_class: str = Field(default="highlightable", description="Class of the span wrapping a located snippet.")
    min_window: int = Field(default=2, gt=0, description="Initial length of the boundary search slice.")
    max_window: int = Field(default=20, gt=0, description="Longest boundary search slice.")

    @model_validator(mode="after")
    def validate_window(self) -> "HighlightSettings":
        if self.min_window > self.max_window:
            raise ValueError("min_window must not exceed max_window")
        return self


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = Field(default=False, description="Render console logs as JSON lines.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "passagelink"
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    highlight: HighlightSettings = Field(default_factory=HighlightSettings)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="PASSAGELINK_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "passagelink.yaml",
        current_dir / "config.yaml",
        current_dir / "config.yml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from ``path``, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path:
        log.info("Loading configuration from: %s", config_path)
        return Config.from_yaml(config_path)
    log.info("No config file found. Using default settings.")
    return Config()
