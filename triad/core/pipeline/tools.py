"""
Researcher tools.

The invoker never raises for a tool problem: unreachable sources,
missing articles, bad input and unknown tool names all come back as a
descriptive text result so every request gets a paired result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from triad.services.knowledge.base import KnowledgeSource
from triad.services.llm.models import ToolSpec
from triad.utils.logging import get_logger

logger = get_logger(__name__)


class ToolName(str, Enum):
    SEARCH = "search_wikipedia"
    FETCH_ARTICLE = "get_wikipedia_article"


RESEARCHER_TOOLS: list[ToolSpec] = [
    ToolSpec(
        name=ToolName.SEARCH.value,
        description=(
            "Searches Wikipedia for articles related to a query. "
            "Returns a list of matching article titles and snippets."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query in English for best results",
                },
            },
            "required": ["query"],
        },
    ),
    ToolSpec(
        name=ToolName.FETCH_ARTICLE.value,
        description="Retrieves the full summary of a specific Wikipedia article by its exact title.",
        input_schema={
            "type": "object",
            "properties": {
                "title": {
                    "type": "string",
                    "description": "The exact Wikipedia article title to retrieve",
                },
            },
            "required": ["title"],
        },
    ),
]

NO_RESULTS = "No results."
UNKNOWN_TOOL = "Unknown tool."
EMPTY_ARTICLE = "Article has no content."


@dataclass(frozen=True)
class ToolOutcome:
    """Full result text for the model plus what the consumer is shown."""

    content: str
    preview: str
    count: Optional[int] = None


def truncate_preview(text: str, limit: int) -> str:
    return text[:limit] + "…" if len(text) > limit else text


class ToolInvoker:
    """Dispatches researcher tool calls to the knowledge source."""

    def __init__(self, source: KnowledgeSource, preview_chars: int = 120):
        self.source = source
        self.preview_chars = preview_chars

    async def invoke(self, name: str, tool_input: Optional[dict[str, Any]]) -> str:
        """Run a tool and return its textual result."""
        return (await self.execute(name, tool_input)).content

    async def execute(self, name: str, tool_input: Optional[dict[str, Any]]) -> ToolOutcome:
        tool_input = tool_input if isinstance(tool_input, dict) else {}

        try:
            tool = ToolName(name)
        except ValueError:
            logger.warning(f"Model requested unknown tool: {name!r}")
            return ToolOutcome(content=UNKNOWN_TOOL, preview=UNKNOWN_TOOL)

        if tool is ToolName.SEARCH:
            return await self._search(str(tool_input.get("query") or "").strip())
        return await self._fetch_article(str(tool_input.get("title") or "").strip())

    async def _search(self, query: str) -> ToolOutcome:
        if not query:
            return ToolOutcome(content="Missing required input: query.", preview=NO_RESULTS, count=0)

        try:
            candidates = await self.source.search(query)
        except Exception as e:
            logger.warning(f"Search failed for '{query}': {e}")
            candidates = []

        if not candidates:
            return ToolOutcome(content=NO_RESULTS, preview=NO_RESULTS, count=0)

        return ToolOutcome(
            content="\n".join(f"• {c.title}: {c.snippet}" for c in candidates),
            preview=", ".join(c.title for c in candidates),
            count=len(candidates),
        )

    async def _fetch_article(self, title: str) -> ToolOutcome:
        if not title:
            content = "Missing required input: title."
            return ToolOutcome(content=content, preview=content)

        try:
            summary = await self.source.fetch_summary(title)
        except Exception as e:
            logger.warning(f"Article fetch failed for '{title}': {e}")
            summary = None

        if summary is None:
            content = f"Article not found: {title}"
        else:
            content = summary or EMPTY_ARTICLE

        return ToolOutcome(
            content=content,
            preview=truncate_preview(content, self.preview_chars),
        )
