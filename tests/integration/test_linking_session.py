"""
Integration tests for LinkingSession: extraction, streamed summary, linking
and highlighting on one page.
"""

import asyncio

import pytest

from passagelink.dom import HtmlDocument
from passagelink.exceptions import PassageLinkError
from passagelink.pipeline import LinkingSession, ReplaySummarizer, SessionStage

SUMMARY = (
    "* Carbon taxes are the main climate policy tool\n"
    "* Coral reefs and marine life suffer as the ocean warms\n"
    "* Urban streets and green roofs keep cities cool\n"
)


class GatedEmbedder:
    """Holds the first embedding call until released."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.calls = 0

    async def embed(self, texts):
        self.calls += 1
        if self.calls == 1:
            self.entered.set()
            await self.gate.wait()
        return await self.inner.embed(texts)


@pytest.fixture
def session(article_document, config, keyword_embedder):
    return LinkingSession(
        article_document, config, embedder=keyword_embedder, summarizer=ReplaySummarizer(SUMMARY, chunk_size=7)
    )


@pytest.mark.integration
class TestLinkingSession:
    @pytest.mark.asyncio
    async def test_run_links_every_key_point(self, session, paragraphs):
        snapshots = []
        result = await session.run(snapshots.append)

        assert result is not None and result.diagnostic is None
        assert snapshots[0] == []
        assert [entry.text for entry in session.key_points] == [
            "Carbon taxes are the main climate policy tool",
            "Coral reefs and marine life suffer as the ocean warms",
            "Urban streets and green roofs keep cities cool",
        ]
        linked = [[link.text for link in match.targets] for match in result.matches]
        assert linked == [[paragraphs[0]], [paragraphs[1]], [paragraphs[3]]]
        assert session.stage is SessionStage.IDLE

    @pytest.mark.asyncio
    async def test_summary_covers_target_text(self, session, paragraphs):
        session.extract()
        assert session.full_text() == "\n\n".join(paragraphs)

    @pytest.mark.asyncio
    async def test_linked_sentences_can_be_highlighted(self, session, article_document):
        result = await session.run()

        for match in result.matches:
            for link in match.targets:
                outcome = session.put_highlight(link.id, link.sentences)
                assert outcome.success, outcome.to_dict()

        markers = article_document.soup.find_all("span", class_="highlightable")
        assert markers
        assert session.dim_highlight() == len(markers)
        assert article_document.soup.find("span", class_="highlightable") is None

    @pytest.mark.asyncio
    async def test_state_snapshot(self, session):
        await session.run()
        state = session.to_dict()

        assert state["stage"] == "idle"
        assert state["extractable"] is True
        assert state["run_id"] == 1
        assert len(state["targets"]) == 5
        assert len(state["key_points"]) == 3
        assert [match["id"] for match in state["matches"]] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_stale_run_is_discarded(self, article_document, config, keyword_embedder):
        embedder = GatedEmbedder(keyword_embedder)
        session = LinkingSession(article_document, config, embedder=embedder, summarizer=ReplaySummarizer(SUMMARY))
        session.extract()
        await session.summarize()

        first = asyncio.create_task(session.link())
        await embedder.entered.wait()
        second = await session.link()
        embedder.gate.set()

        assert await first is None
        assert second is not None and second.matches
        assert session.matches is second
        assert session.state().run_id == 2

    @pytest.mark.asyncio
    async def test_unreadable_page(self, config, keyword_embedder):
        document = HtmlDocument.from_html("<html><body><p>Nothing much here.</p></body></html>")
        summarizer = ReplaySummarizer(SUMMARY)
        session = LinkingSession(document, config, embedder=keyword_embedder, summarizer=summarizer)

        result = await session.run()

        assert not result
        assert result.diagnostic == "not_extractable"
        assert session.extractable is False
        assert session.key_points == []

    @pytest.mark.asyncio
    async def test_link_without_key_points(self, session):
        session.extract()
        result = await session.link()
        assert result.matches == []
        assert "No anchors" in result.diagnostic

    @pytest.mark.asyncio
    async def test_summarize_requires_summarizer(self, article_document, config, keyword_embedder):
        session = LinkingSession(article_document, config, embedder=keyword_embedder)
        with pytest.raises(PassageLinkError):
            await session.summarize()

    def test_default_sessions_share_the_model_cache(self, article_html, config):
        first = LinkingSession(HtmlDocument.from_html(article_html), config)
        second = LinkingSession(HtmlDocument.from_html(article_html), config)

        assert first.matcher.embedder.cache is second.matcher.embedder.cache


class TestReplaySummarizer:
    @pytest.mark.asyncio
    async def test_chunks(self):
        chunks = [chunk async for chunk in ReplaySummarizer("abcdefg", chunk_size=3).summarize_streaming("ignored")]
        assert chunks == ["abc", "def", "g"]

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ReplaySummarizer("abc", chunk_size=0)
