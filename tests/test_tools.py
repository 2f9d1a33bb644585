"""Tests for the researcher tool invoker."""

import pytest

from conftest import FakeKnowledgeSource
from triad.core.pipeline.tools import (
    EMPTY_ARTICLE,
    RESEARCHER_TOOLS,
    UNKNOWN_TOOL,
    ToolInvoker,
    ToolName,
    truncate_preview,
)
from triad.services.knowledge.models import ArticleCandidate


class TestToolSchema:

    def test_two_tools_advertised(self):
        names = [t.name for t in RESEARCHER_TOOLS]
        assert names == [ToolName.SEARCH.value, ToolName.FETCH_ARTICLE.value]

    def test_required_inputs(self):
        required = {t.name: t.input_schema["required"] for t in RESEARCHER_TOOLS}
        assert required == {"search_wikipedia": ["query"], "get_wikipedia_article": ["title"]}


class TestToolInvoker:

    @pytest.fixture
    def source(self):
        return FakeKnowledgeSource(
            searches={
                "python": [
                    ArticleCandidate("Python (programming language)", "A language"),
                    ArticleCandidate("Pythonidae", "A snake family"),
                ],
            },
            articles={"Pythonidae": "x" * 300, "Empty": ""},
        )

    @pytest.mark.asyncio
    async def test_search_formats_candidates(self, source):
        outcome = await ToolInvoker(source).execute("search_wikipedia", {"query": "python"})
        assert outcome.content == "• Python (programming language): A language\n• Pythonidae: A snake family"
        assert outcome.preview == "Python (programming language), Pythonidae"
        assert outcome.count == 2

    @pytest.mark.asyncio
    async def test_search_without_hits(self, source):
        outcome = await ToolInvoker(source).execute("search_wikipedia", {"query": "nothing"})
        assert outcome.content == "No results."
        assert outcome.count == 0

    @pytest.mark.asyncio
    async def test_empty_results_share_one_preview(self, source):
        invoker = ToolInvoker(source)
        missing_query = await invoker.execute("search_wikipedia", {"query": "  "})
        no_hits = await invoker.execute("search_wikipedia", {"query": "nothing"})
        assert missing_query.preview == no_hits.preview == "No results."

    @pytest.mark.asyncio
    async def test_fetch_truncates_preview_only(self, source):
        outcome = await ToolInvoker(source, preview_chars=120).execute(
            "get_wikipedia_article", {"title": "Pythonidae"}
        )
        assert outcome.content == "x" * 300
        assert outcome.preview == "x" * 120 + "…"
        assert outcome.count is None

    @pytest.mark.asyncio
    async def test_fetch_missing_article(self, source):
        content = await ToolInvoker(source).invoke("get_wikipedia_article", {"title": "Nope"})
        assert content == "Article not found: Nope"

    @pytest.mark.asyncio
    async def test_fetch_empty_article(self, source):
        content = await ToolInvoker(source).invoke("get_wikipedia_article", {"title": "Empty"})
        assert content == EMPTY_ARTICLE

    @pytest.mark.asyncio
    async def test_unknown_tool(self, source):
        outcome = await ToolInvoker(source).execute("delete_everything", {"x": 1})
        assert outcome.content == UNKNOWN_TOOL
        assert source.lookups == []

    @pytest.mark.asyncio
    async def test_missing_input(self, source):
        content = await ToolInvoker(source).invoke("search_wikipedia", {})
        assert "query" in content
        assert source.lookups == []

    @pytest.mark.asyncio
    async def test_non_dict_input(self, source):
        content = await ToolInvoker(source).invoke("get_wikipedia_article", None)
        assert "title" in content

    @pytest.mark.asyncio
    async def test_unreachable_source_never_raises(self):
        invoker = ToolInvoker(FakeKnowledgeSource(unreachable=True))
        assert await invoker.invoke("search_wikipedia", {"query": "x"}) == "No results."
        assert await invoker.invoke("get_wikipedia_article", {"title": "X"}) == "Article not found: X"


def test_truncate_preview_short_text_untouched():
    assert truncate_preview("short", 120) == "short"
