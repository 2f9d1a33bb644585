"""Shared fixtures and test doubles."""

import os
from typing import Optional, Sequence

import pytest

os.environ.setdefault("TRIAD_ENVIRONMENT", "test")

from triad.config import Settings, clear_settings_cache
from triad.core.pipeline import ModelSelection, Orchestrator
from triad.services.knowledge.base import KnowledgeSource
from triad.services.knowledge.models import ArticleCandidate
from triad.services.llm.base import ModelClient
from triad.services.llm.models import (
    GenerationConfig,
    ModelResponse,
    StopReason,
    TextSegment,
    ToolRequest,
    ToolSpec,
    Turn,
)
from triad.services.llm.router import ModelRouter
from triad.utils.exceptions import KnowledgeSourceConnectionError


def text_reply(*texts: str) -> ModelResponse:
    return ModelResponse(
        segments=[TextSegment(t) for t in texts],
        stop_reason=StopReason.END_TURN,
    )


def tool_reply(*requests: ToolRequest, thinking: Optional[str] = None) -> ModelResponse:
    segments: list = [TextSegment(thinking)] if thinking else []
    segments.extend(requests)
    return ModelResponse(segments=segments, stop_reason=StopReason.TOOL_USE)


class RecordedCall:
    def __init__(self, system, history, config, tools):
        self.system = system
        self.history = [Turn(role=t.role, segments=list(t.segments)) for t in history]
        self.config = config
        self.tools = list(tools) if tools else None


class ScriptedModelClient(ModelClient):
    """Replays scripted responses in call order; exceptions in the script are raised."""

    provider_name = "scripted"

    def __init__(self, script: Sequence):
        self.script = list(script)
        self.calls: list[RecordedCall] = []
        self.closed = False

    async def invoke(
        self,
        system: str,
        history: Sequence[Turn],
        config: GenerationConfig,
        tools: Optional[Sequence[ToolSpec]] = None,
    ) -> ModelResponse:
        self.calls.append(RecordedCall(system, history, config, tools))
        if not self.script:
            raise AssertionError("model called more times than scripted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


class FakeKnowledgeSource(KnowledgeSource):
    def __init__(self, searches=None, articles=None, unreachable: bool = False):
        self.searches: dict[str, list[ArticleCandidate]] = searches or {}
        self.articles: dict[str, str] = articles or {}
        self.unreachable = unreachable
        self.lookups: list[tuple[str, str]] = []

    async def search(self, query, limit=None):
        self.lookups.append(("search", query))
        if self.unreachable:
            raise KnowledgeSourceConnectionError("fake")
        return self.searches.get(query, [])

    async def fetch_summary(self, title):
        self.lookups.append(("fetch", title))
        if self.unreachable:
            raise KnowledgeSourceConnectionError("fake")
        return self.articles.get(title)

    async def health_check(self):
        return not self.unreachable


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings():
    return Settings(environment="test")


@pytest.fixture
def selection():
    return ModelSelection(planner="plan-model", researcher="research-model", synthesizer="synth-model")


@pytest.fixture
def knowledge():
    return FakeKnowledgeSource(
        searches={"X": [ArticleCandidate(title="X", snippet="X is a letter")]},
        articles={"X": "X is the 24th letter of the Latin alphabet."},
    )


def make_orchestrator(script, knowledge, settings) -> tuple[Orchestrator, ScriptedModelClient]:
    client = ScriptedModelClient(script)
    orchestrator = Orchestrator(
        router=ModelRouter(anthropic=client, ollama=client),
        knowledge=knowledge,
        settings=settings,
    )
    return orchestrator, client
