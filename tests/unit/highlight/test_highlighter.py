"""
Unit tests for Highlighter.
"""

from dataclasses import dataclass

import pytest

from passagelink.config import HighlightSettings
from passagelink.dom import HtmlDocument
from passagelink.exceptions import TargetNotFound
from passagelink.highlight import Highlighter

PARAGRAPH = (
    '<p data-node-id="7">Climate change policy shapes how <b>governments</b> plan. Carbon pricing works.</p>'
)


@dataclass
class Scored:
    text: str
    score: float = 1.0


@pytest.fixture
def document():
    return HtmlDocument.from_html(f"<div>{PARAGRAPH}<p>Other text.</p></div>")


@pytest.fixture
def highlighter(document):
    return Highlighter(document)


def _markers(document, marker_class="highlightable"):
    return document.soup.find_all("span", class_=marker_class)


class TestPutHighlight:
    def test_marks_exact_sentence(self, document, highlighter):
        outcome = highlighter.put_highlight(7, ["Climate change policy"])

        assert outcome.success
        assert outcome.marked == 1
        markers = _markers(document)
        assert [marker.get_text() for marker in markers] == ["Climate change policy"]

    def test_sentence_across_inline_element_gets_one_marker(self, document, highlighter):
        highlighter.put_highlight("7", [Scored("shapes how governments plan.")])

        markers = _markers(document)
        assert len(markers) == 1
        assert markers[0].get_text() == "shapes how governments plan."
        assert markers[0].b is not None

    def test_sentence_across_parents_gets_one_marker_per_segment(self, document, highlighter):
        highlighter.put_highlight(7, ["governments plan"])

        assert [marker.get_text() for marker in _markers(document)] == ["governments", " plan"]

    def test_failures_are_collected(self, document, highlighter):
        outcome = highlighter.put_highlight(7, ["Climate change policy", "zzzz qqqq", "   "])

        assert outcome.marked == 1
        assert not outcome.success
        assert [failure.snippet for failure in outcome.failures] == ["zzzz qqqq"]
        assert outcome.failures[0].kind in ("snippet_too_short", "snippet_not_found")
        assert outcome.to_dict()["success"] is False

    def test_replaces_previous_marks(self, document, highlighter):
        highlighter.put_highlight(7, ["Climate change policy"])
        highlighter.put_highlight(7, ["Carbon pricing works."])

        assert [marker.get_text() for marker in _markers(document)] == ["Carbon pricing works."]

    def test_unknown_target(self, highlighter):
        with pytest.raises(TargetNotFound):
            highlighter.put_highlight(99, ["Climate"])
        with pytest.raises(TargetNotFound):
            highlighter.put_highlight("not-an-id", ["Climate"])

    def test_custom_marker_class(self, document):
        highlighter = Highlighter(document, HighlightSettings(marker_class="lpr-mark"))
        highlighter.put_highlight(7, ["Carbon pricing"])
        assert len(_markers(document, "lpr-mark")) == 1


class TestDimHighlight:
    def test_restores_the_original_markup(self, document, highlighter):
        original = str(document.soup)
        highlighter.put_highlight(7, ["Climate change policy", "governments plan"])

        assert highlighter.dim_highlight() == 3
        assert str(document.soup) == original

    def test_round_trip_leaves_single_marker(self, document, highlighter):
        highlighter.put_highlight(7, ["Climate change policy"])
        highlighter.dim_highlight()
        highlighter.put_highlight(7, ["Climate change policy"])

        assert len(_markers(document)) == 1

    def test_nothing_to_dim(self, highlighter):
        assert highlighter.dim_highlight() == 0
