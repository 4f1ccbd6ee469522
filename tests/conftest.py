"""
Shared fixtures for PassageLink tests.

Pages use declared sizes so the flow layout gives stable geometry, and the
embedders are deterministic keyword models so matching is exact.
"""

import re
from typing import Dict, List, Sequence

import numpy as np
import pytest

from passagelink.config import Config, ExtractionSettings
from passagelink.dom import HtmlDocument
from passagelink.extractor import SoupFallbackParser, TargetExtractor

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Pages
# ============================================================================

CLIMATE = (
    "Climate change policy shapes how governments plan for rising temperatures. "
    "Carbon pricing puts a cost on emissions and nudges industry toward cleaner energy. "
    "Several countries combine carbon taxes with rebates so that households are not left worse off. "
    "Critics argue the prices are still far too low to change behaviour quickly."
)
OCEAN = (
    "Ocean warming has accelerated over the last two decades across every major basin. "
    "Coral reefs bleach when water temperatures stay high for several weeks in a row. "
    "Fisheries follow cooler water toward the poles, which disrupts coastal economies. "
    "Marine heatwaves now occur twice as often as they did in the early eighties."
)
FARMING = (
    "Farming adapts through drought resistant crops and smarter irrigation schedules. "
    "Soil health programmes pay farmers to keep fields covered during the winter months. "
    "Some regions are moving planting dates earlier to avoid the hottest weeks of summer. "
    "Yields of wheat and maize remain sensitive to heat during flowering."
)
CITIES = (
    "Cities respond with green roofs, shaded streets and cooling centres for heatwaves. "
    "Urban trees lower surface temperatures by several degrees on the hottest afternoons. "
    "Building codes increasingly require reflective materials on new construction. "
    "Transit investment reduces traffic emissions while improving air quality downtown."
)

ARTICLE_HTML = f"""<!DOCTYPE html>
<html>
<head><title>Adapting to a warmer world</title><style>p {{ margin: 0 }}</style></head>
<body>
<header><nav><a href="/">Home</a> <a href="/news">News</a></nav></header>
<article>
  <h1>Adapting to a warmer world</h1>
  <p>{CLIMATE}</p>
  <p>{OCEAN}</p>
  <img src="chart.png" alt="Temperature chart" width="640" height="360">
  <p>{FARMING}</p>
  <p>{CITIES}</p>
</article>
<footer>Copyright 2024 Example News</footer>
<script>window.analytics = true;</script>
</body>
</html>
"""


@pytest.fixture
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture
def article_document() -> HtmlDocument:
    return HtmlDocument.from_html(ARTICLE_HTML)


@pytest.fixture
def paragraphs() -> List[str]:
    return [CLIMATE, OCEAN, FARMING, CITIES]


@pytest.fixture
def extraction_settings() -> ExtractionSettings:
    return ExtractionSettings(readability_order=["soup_fallback"])


@pytest.fixture
def extractor(extraction_settings: ExtractionSettings) -> TargetExtractor:
    return TargetExtractor(extraction_settings, readability=SoupFallbackParser())


@pytest.fixture
def config() -> Config:
    return Config(extraction=ExtractionSettings(readability_order=["soup_fallback"]))


# ============================================================================
# Embedders
# ============================================================================

TOPICS: Dict[str, Sequence[str]] = {
    "climate": ("carbon", "climate", "emission", "tax", "policy"),
    "ocean": ("ocean", "coral", "marine", "fisheries", "sea"),
    "farming": ("farm", "crop", "soil", "yield", "irrigation", "planting"),
    "cities": ("cities", "city", "urban", "roof", "street", "building", "transit"),
}


class KeywordEmbedder:
    """Embeds text as a normalized histogram of topic keyword hits."""

    def __init__(self, topics: Dict[str, Sequence[str]] = TOPICS) -> None:
        self.topics = list(topics.values())
        self.calls: List[List[str]] = []

    def vector(self, text: str) -> np.ndarray:
        words = re.findall(r"[a-z]+", text.lower())
        vector = np.zeros(len(self.topics) + 1, dtype=np.float32)
        for index, keywords in enumerate(self.topics):
            vector[index] = sum(1 for word in words if any(word.startswith(k) for k in keywords))
        if not vector.any():
            vector[-1] = 1.0
        return vector / np.linalg.norm(vector)

    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        self.calls.append(list(texts))
        return np.stack([self.vector(text) for text in texts])


class FailingEmbedder:
    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        raise RuntimeError("model offline")


@pytest.fixture
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def failing_embedder() -> FailingEmbedder:
    return FailingEmbedder()
