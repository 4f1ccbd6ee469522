"""
Unit tests for element geometry.
"""

import pytest
from bs4 import BeautifulSoup

from passagelink.dom import EMPTY_BOX, BoundingBox, FlowLayout, HtmlDocument, StaticLayout
from passagelink.dom.layout import declared_size, is_hidden, parse_style


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestBoundingBox:
    def test_empty_when_zero_sized(self):
        assert EMPTY_BOX.is_empty
        assert BoundingBox(top=10, bottom=10, width=100, height=0).is_empty
        assert not BoundingBox(top=0, bottom=5, width=1, height=5).is_empty

    def test_to_dict(self):
        box = BoundingBox(top=1, bottom=3, width=4, height=2)
        assert box.to_dict() == {"top": 1, "bottom": 3, "width": 4, "height": 2}


class TestStyleHelpers:
    def test_parse_style(self):
        assert parse_style("Display: None; width:200px;;junk") == {"display": "none", "width": "200px"}
        assert parse_style(None) == {}

    def test_declared_size_prefers_style(self):
        tag = _soup('<img style="width: 320px" width="100" height="90">').img
        assert declared_size(tag) == (320.0, 90.0)

    def test_declared_size_ignores_relative_units(self):
        tag = _soup('<div style="width: 50%; height: 2em"></div>').div
        assert declared_size(tag) == (None, None)

    @pytest.mark.parametrize(
        "html",
        ['<div hidden></div>', '<div style="display:none"></div>', '<div style="visibility: hidden"></div>'],
    )
    def test_is_hidden(self, html):
        assert is_hidden(_soup(html).div)

    def test_visible_div(self):
        assert not is_hidden(_soup("<div>text</div>").div)


class TestFlowLayout:
    def test_text_advances_the_cursor(self):
        soup = _soup("<body><p>" + "a" * 90 + "</p><p>" + "b" * 180 + "</p></body>")
        layout = FlowLayout(viewport_width=1000, line_height=24, chars_per_line=90)
        first, second = soup.find_all("p")

        assert layout.box(first) == BoundingBox(top=0, bottom=24, width=1000, height=24)
        assert layout.box(second) == BoundingBox(top=24, bottom=72, width=1000, height=48)
        assert layout.box(soup.body).height == 72

    def test_hidden_subtree_is_empty(self):
        soup = _soup('<body><div style="display:none"><p>invisible text</p></div><p>shown</p></body>')
        layout = FlowLayout()
        assert layout.box(soup.div).is_empty
        assert layout.box(soup.div.p).is_empty
        assert not layout.box(soup.find_all("p")[1]).is_empty

    def test_replaced_elements(self):
        soup = _soup('<body><img src="a.png"><img src="b.png" width="100"><svg></svg><video height="90"></video></body>')
        layout = FlowLayout()
        unsized, sized = soup.find_all("img")

        assert layout.box(unsized).is_empty
        assert layout.box(sized).width == 100
        assert layout.box(sized).height == 50
        assert (layout.box(soup.svg).width, layout.box(soup.svg).height) == (300, 150)
        assert (layout.box(soup.video).width, layout.box(soup.video).height) == (180, 90)

    def test_declared_height_reserves_space(self):
        soup = _soup('<body><div style="height: 200px">x</div><p>after</p></body>')
        layout = FlowLayout()
        assert layout.box(soup.div).height == 200
        assert layout.box(soup.p).top == 200

    def test_invalidate_remeasures(self):
        soup = _soup("<body><p>" + "a" * 90 + "</p><p>b</p></body>")
        layout = FlowLayout(chars_per_line=90, line_height=24)
        second = soup.find_all("p")[1]
        assert layout.box(second).top == 24

        soup.p.decompose()
        layout.invalidate()
        assert layout.box(second).top == 0


class TestStaticLayout:
    def test_boxes_by_node_id(self):
        document = HtmlDocument.from_html('<div><p>one</p><p>two</p></div>')
        document.tag_nodes(lambda element: element.name == "p")
        box = BoundingBox(top=5, bottom=25, width=300, height=20)
        layout = StaticLayout({2: box})

        first, second = document.soup.find_all("p")
        assert layout.box(second) == box
        assert layout.box(first) is EMPTY_BOX
        assert layout.box(document.soup.div) is EMPTY_BOX
