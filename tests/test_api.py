"""
API Tests.

Exercises the HTTP surface with the orchestrator dependency replaced by
one backed by scripted models.
"""

import json

import pytest
from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus

from conftest import FakeKnowledgeSource, ScriptedModelClient, make_orchestrator, text_reply, tool_reply
from triad.api.app import _status_for, app
from triad.api.routes.research import get_orchestrator
from triad.config import Settings
from triad.core.pipeline import Orchestrator
from triad.core.pipeline.prompts import PLANNER_PROMPT
from triad.services.llm.models import ToolRequest
from triad.services.llm.router import ModelRouter
from triad.utils.exceptions import KnowledgeSourceConnectionError, LLMServerError, PipelineCancelledError

PLAN = '{"search_term":"X","response_format":"short summary"}'

LOCAL_MODELS = {role: "ollama/llama3.1" for role in ("planner", "researcher", "synthesizer")}


class OfflineClient(ScriptedModelClient):
    async def health_check(self) -> bool:
        return False


def parse_sse(body: str) -> list[dict]:
    """Decode the ``data:`` lines of an SSE body."""
    return [
        json.loads(line[len("data:"):].strip())
        for line in body.splitlines()
        if line.startswith("data:")
    ]


@pytest.fixture(autouse=True)
def _reset_sse_state():
    # Each TestClient runs its own event loop
    AppStatus.should_exit_event = None
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def wire(knowledge, settings):
    """Install an orchestrator for the given script and return its model client."""
    def _wire(script, source=None):
        orchestrator, client = make_orchestrator(script, source or knowledge, settings)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return client
    return _wire


@pytest.fixture
def client():
    return TestClient(app)


class TestStreamEndpoint:
    """SSE streaming endpoint."""

    def test_streams_every_event_in_order(self, client, wire):
        wire([
            text_reply(PLAN),
            tool_reply(ToolRequest("t1", "search_wikipedia", {"query": "X"})),
            text_reply("X is a letter."),
            text_reply("**X** is a letter."),
        ])

        response = client.post("/api/v1/research/stream", json={"question": "What is X?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert [e["type"] for e in events] == [
            "planning-start",
            "plan-produced",
            "delegate",
            "research-start",
            "research-tool-call",
            "research-tool-result",
            "research-thinking",
            "research-done",
            "delegate",
            "synthesis-start",
            "synthesis-done",
            "pipeline-done",
        ]
        assert events[1]["searchTerm"] == "X"
        assert events[4] == {"type": "research-tool-call", "tool": "search_wikipedia", "input": {"query": "X"}}
        assert events[5]["count"] == 1
        assert events[10]["answer"] == "**X** is a letter."
        assert "event: planning-start" in response.text

    def test_stream_ends_with_error_event(self, client, wire):
        wire([RuntimeError("model exploded")])

        response = client.post("/api/v1/research/stream", json={"question": "What is X?"})

        events = parse_sse(response.text)
        assert [e["type"] for e in events] == ["planning-start", "error"]
        assert events[-1]["message"] == "model exploded"

    def test_per_role_models(self, client, wire):
        model = wire([text_reply(PLAN), text_reply("found"), text_reply("answer")])

        client.post("/api/v1/research/stream", json={
            "question": "What is X?",
            "supervisorModel": "claude-planner",
            "researcherModel": "ollama/llama3.1",
            "synthesizerModel": "claude-writer",
        })

        assert [c.config.model for c in model.calls] == ["claude-planner", "llama3.1", "claude-writer"]

    @pytest.mark.parametrize("question", ["", "   \n\t "])
    def test_empty_question_rejected(self, client, wire, question):
        model = wire([])
        response = client.post("/api/v1/research/stream", json={"question": question})
        assert response.status_code == 422
        assert model.calls == []


class TestBlockingEndpoint:
    """Blocking endpoint."""

    def test_returns_answer_and_plan(self, client, wire):
        wire([text_reply(PLAN), text_reply("found"), text_reply("The answer.")])

        response = client.post("/api/v1/research/", json={"question": "What is X?"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "complete"
        assert body["answer"] == "The answer."
        assert body["plan"] == {"searchTerm": "X", "responseFormat": "short summary"}
        assert body["error"] is None
        assert len(body["events"]) == 10

    def test_reports_error(self, client, wire):
        wire([text_reply(PLAN), RuntimeError("research failed")])

        body = client.post("/api/v1/research/", json={"question": "What is X?"}).json()

        assert body["status"] == "error"
        assert body["error"] == "research failed"
        assert body["answer"] is None


class TestMiscEndpoints:

    def test_prompts(self, client):
        body = client.get("/api/v1/research/prompts").json()
        assert body["planner"] == PLANNER_PROMPT
        assert set(body) == {"planner", "researcher", "synthesizer"}

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_health_degraded_when_source_down(self, client, wire):
        wire([], source=FakeKnowledgeSource(unreachable=True))

        body = client.get("/health/").json()

        assert body["status"] == "degraded"
        assert {s["name"]: s["healthy"] for s in body["services"]} == {
            "anthropic": True,
            "wikipedia": False,
        }

    def test_readiness(self, client, wire):
        wire([])
        assert client.get("/health/ready").json() == {"status": "ready"}

    def test_local_models_skip_anthropic_check(self, client):
        orchestrator = Orchestrator(
            router=ModelRouter(anthropic=OfflineClient([]), ollama=ScriptedModelClient([])),
            knowledge=FakeKnowledgeSource(),
            settings=Settings(environment="test", llm={"models": LOCAL_MODELS}),
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        assert client.get("/health/ready").json() == {"status": "ready"}
        services = client.get("/health/").json()["services"]
        assert {s["name"]: s["healthy"] for s in services} == {"ollama": True, "wikipedia": True}

    def test_unreachable_backend_in_use_is_not_ready(self, client):
        orchestrator = Orchestrator(
            router=ModelRouter(anthropic=OfflineClient([]), ollama=ScriptedModelClient([])),
            knowledge=FakeKnowledgeSource(),
            settings=Settings(environment="test"),
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        assert client.get("/health/ready").json() == {"status": "not_ready", "reason": "anthropic unavailable"}

    def test_metrics(self, client, wire):
        wire([text_reply(PLAN), text_reply("found"), text_reply("answer")])
        client.post("/api/v1/research/", json={"question": "What is X?"})

        response = client.get("/health/metrics")

        assert response.status_code == 200
        assert 'triad_pipeline_runs_total{status="complete"}' in response.text


class TestErrorStatus:
    """Status codes for application errors that reach the HTTP layer."""

    @pytest.mark.parametrize("error,status", [
        (LLMServerError("Anthropic", 503), 502),
        (KnowledgeSourceConnectionError("wikipedia"), 502),
        (PipelineCancelledError(), 500),
    ])
    def test_status_mapping(self, error, status):
        assert _status_for(error) == status
