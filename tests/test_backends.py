"""
Backend Tests.

Model and knowledge backends against mocked HTTP transports.
"""

import json
from types import SimpleNamespace

import httpx
import pytest

from triad.services.knowledge.wikipedia import WikipediaService
from triad.services.llm.anthropic import AnthropicService, decode_block, encode_segment
from triad.services.llm.models import (
    GenerationConfig,
    LLMRole,
    StopReason,
    TextSegment,
    ToolRequest,
    ToolResult,
    ToolSpec,
    Turn,
)
from triad.services.llm.ollama import OllamaService
from triad.services.llm.router import ModelRouter
from triad.utils.exceptions import (
    KnowledgeSourceError,
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
)
from triad.utils.retry import RetryConfig

SEARCH_TOOL = ToolSpec(
    name="search_wikipedia",
    description="Search",
    input_schema={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
)

TOOL_HISTORY = [
    Turn.user_text("Find X"),
    Turn(role=LLMRole.ASSISTANT, segments=[
        TextSegment("Searching."),
        ToolRequest("toolu_1", "search_wikipedia", {"query": "X"}),
    ]),
    Turn(role=LLMRole.USER, segments=[ToolResult("toolu_1", "• X: a letter")]),
]


class Recorder:
    """Mock transport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def message_json(content, stop_reason="end_turn", **extra) -> dict:
    body = {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": content,
        "stop_reason": stop_reason,
        "usage": {"input_tokens": 1, "output_tokens": 1},
    }
    body.update(extra)
    return body


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr(RetryConfig, "delay_for", lambda self, attempt, exc=None: 0)


class TestAnthropicService:

    def make(self, handler, max_retries=0):
        return AnthropicService(
            api_key="sk-test",
            base_url="https://anthropic.test",
            max_retries=max_retries,
            transport=httpx.MockTransport(handler),
        )

    def test_segment_codec(self):
        assert encode_segment(ToolResult("t", "ok")) == {
            "type": "tool_result", "tool_use_id": "t", "content": "ok",
        }
        block = SimpleNamespace(type="tool_use", id="t", name="n", input={"a": 1})
        assert decode_block(block) == ToolRequest("t", "n", {"a": 1})
        assert decode_block(SimpleNamespace(type="thinking", thinking="...")) is None

    @pytest.mark.asyncio
    async def test_invoke_with_tools(self):
        handler = Recorder(httpx.Response(200, json=message_json(
            [
                {"type": "text", "text": "Let me look."},
                {"type": "tool_use", "id": "toolu_2", "name": "get_wikipedia_article", "input": {"title": "X"}},
            ],
            stop_reason="tool_use",
            usage={"input_tokens": 10, "output_tokens": 5},
        )))
        service = self.make(handler)

        response = await service.invoke(
            "system prompt",
            TOOL_HISTORY,
            GenerationConfig(model="claude-test", max_tokens=256),
            tools=[SEARCH_TOOL],
        )
        await service.close()

        assert response.stop_reason is StopReason.TOOL_USE
        assert response.texts == ["Let me look."]
        assert response.tool_requests == [ToolRequest("toolu_2", "get_wikipedia_article", {"title": "X"})]
        assert response.usage.total_tokens == 15

        request = handler.requests[0]
        assert request.url.path == "/v1/messages"
        assert request.headers["x-api-key"] == "sk-test"
        body = handler.body()
        assert body["system"] == "system prompt"
        assert body["max_tokens"] == 256
        assert body["tools"][0]["input_schema"]["required"] == ["query"]
        assert body["messages"][1]["content"][1] == {
            "type": "tool_use", "id": "toolu_1", "name": "search_wikipedia", "input": {"query": "X"},
        }
        assert body["messages"][2] == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "toolu_1", "content": "• X: a letter"}],
        }

    @pytest.mark.asyncio
    async def test_no_tools_key_without_tools(self):
        handler = Recorder(httpx.Response(200, json=message_json([{"type": "text", "text": "hi"}])))
        service = self.make(handler)
        response = await service.invoke("s", [Turn.user_text("hello")], GenerationConfig(model="m"))

        assert "tools" not in handler.body()
        assert response.first_text() == "hi"
        assert response.stop_reason is StopReason.END_TURN

    @pytest.mark.asyncio
    async def test_unknown_stop_reason(self):
        handler = Recorder(httpx.Response(200, json=message_json([], stop_reason="pause_turn")))
        response = await self.make(handler).invoke("s", [Turn.user_text("q")], GenerationConfig(model="m"))
        assert response.stop_reason is StopReason.OTHER

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, LLMAuthenticationError),
        (429, LLMRateLimitError),
        (400, LLMResponseError),
    ])
    async def test_error_statuses(self, status, error):
        handler = Recorder(httpx.Response(status, json={"error": {"message": "nope"}}))
        with pytest.raises(error):
            await self.make(handler).invoke("s", [Turn.user_text("q")], GenerationConfig(model="m"))

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self):
        handler = Recorder(httpx.Response(529, headers={"retry-after": "3"}, json={}))
        with pytest.raises(LLMRateLimitError) as info:
            await self.make(handler).invoke("s", [Turn.user_text("q")], GenerationConfig(model="m"))
        assert info.value.retry_after == 3.0

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        handler = Recorder(httpx.ConnectError("refused"))
        with pytest.raises(LLMConnectionError):
            await self.make(handler).invoke("s", [Turn.user_text("q")], GenerationConfig(model="m"))

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, no_backoff):
        handler = Recorder(
            httpx.Response(503, json={"error": {"message": "unavailable"}}),
            httpx.Response(200, json=message_json([{"type": "text", "text": "recovered"}])),
        )
        response = await self.make(handler, max_retries=1).invoke(
            "s", [Turn.user_text("q")], GenerationConfig(model="m")
        )

        assert response.first_text() == "recovered"
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_bad_request_is_sent_once(self, no_backoff):
        handler = Recorder(
            httpx.Response(400, json={"error": {"message": "bad"}}),
            httpx.Response(200, json=message_json([{"type": "text", "text": "unused"}])),
        )
        with pytest.raises(LLMResponseError):
            await self.make(handler, max_retries=1).invoke(
                "s", [Turn.user_text("q")], GenerationConfig(model="m")
            )
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_missing_key_fails_without_request(self):
        handler = Recorder()
        service = AnthropicService(api_key="", max_retries=0, transport=httpx.MockTransport(handler))
        with pytest.raises(LLMAuthenticationError):
            await service.invoke("s", [Turn.user_text("q")], GenerationConfig(model="m"))
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_health_check_needs_key(self):
        service = AnthropicService(api_key="", transport=httpx.MockTransport(Recorder()))
        assert await service.health_check() is False


class TestOllamaService:

    def make(self, handler, max_retries=0):
        return OllamaService(
            base_url="http://ollama.test",
            max_retries=max_retries,
            transport=httpx.MockTransport(handler),
        )

    def test_build_messages_maps_tool_results(self):
        messages = OllamaService(base_url="http://ollama.test").build_messages("sys", TOOL_HISTORY)

        assert messages[0] == {"role": "system", "content": "sys"}
        assert messages[1] == {"role": "user", "content": "Find X"}
        assert messages[2]["tool_calls"] == [
            {"function": {"name": "search_wikipedia", "arguments": {"query": "X"}}}
        ]
        assert messages[3] == {"role": "tool", "content": "• X: a letter", "tool_name": "search_wikipedia"}

    @pytest.mark.asyncio
    async def test_tool_calls_get_ids(self):
        handler = Recorder(httpx.Response(200, json={
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [{"function": {"name": "search_wikipedia", "arguments": {"query": "X"}}}],
            },
            "done_reason": "stop",
        }))
        service = self.make(handler)

        response = await service.invoke(
            "sys", [Turn.user_text("Find X")], GenerationConfig(model="llama3.1"), tools=[SEARCH_TOOL]
        )

        assert response.stop_reason is StopReason.TOOL_USE
        (request,) = response.tool_requests
        assert request.id.startswith("call_")
        assert request.input == {"query": "X"}
        body = handler.body()
        assert body["model"] == "llama3.1"
        assert body["stream"] is False
        assert body["tools"][0]["function"]["name"] == "search_wikipedia"

    @pytest.mark.asyncio
    async def test_length_stop(self):
        handler = Recorder(httpx.Response(200, json={
            "message": {"role": "assistant", "content": "cut"}, "done_reason": "length",
        }))
        response = await self.make(handler).invoke("s", [Turn.user_text("q")], GenerationConfig(model="m"))
        assert response.stop_reason is StopReason.MAX_TOKENS
        assert response.texts == ["cut"]

    @pytest.mark.asyncio
    async def test_connection_failure_is_retried(self, no_backoff):
        handler = Recorder(
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"message": {"role": "assistant", "content": "up"}, "done_reason": "stop"}),
        )
        response = await self.make(handler, max_retries=1).invoke(
            "s", [Turn.user_text("q")], GenerationConfig(model="m")
        )

        assert response.texts == ["up"]
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_list_models(self):
        handler = Recorder(httpx.Response(200, json={"models": [{"name": "llama3.1"}, {"name": "qwen2.5"}]}))
        assert await self.make(handler).list_models() == ["llama3.1", "qwen2.5"]


class TestModelRouter:

    def test_prefix_selects_ollama(self):
        anthropic = AnthropicService(api_key="k")
        ollama = OllamaService()
        router = ModelRouter(anthropic=anthropic, ollama=ollama)

        assert router.resolve("ollama/llama3.1") == (ollama, "llama3.1")
        assert router.resolve("claude-3-5-haiku-latest") == (anthropic, "claude-3-5-haiku-latest")


class TestWikipediaService:

    def make(self, handler):
        return WikipediaService(base_url="https://wiki.test", transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_search(self):
        handler = Recorder(httpx.Response(200, json={"pages": [
            {"title": "X", "excerpt": "<span class=\"searchmatch\">X</span> is a letter &amp; more"},
            {"title": "X-ray", "excerpt": None},
        ]}))

        results = await self.make(handler).search("X", limit=3)

        assert [(r.title, r.snippet) for r in results] == [("X", "X is a letter & more"), ("X-ray", "")]
        request = handler.requests[0]
        assert request.url.path == "/w/rest.php/v1/search/page"
        assert request.url.params["q"] == "X"
        assert request.url.params["limit"] == "3"

    @pytest.mark.asyncio
    async def test_fetch_summary_quotes_title(self):
        handler = Recorder(httpx.Response(200, json={"extract": "A summary."}))

        summary = await self.make(handler).fetch_summary("AC/DC")

        assert summary == "A summary."
        assert handler.requests[0].url.raw_path == b"/api/rest_v1/page/summary/AC%2FDC"

    @pytest.mark.asyncio
    async def test_missing_article(self):
        handler = Recorder(httpx.Response(404, json={"title": "Not found."}))
        assert await self.make(handler).fetch_summary("Nope") is None

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self):
        handler = Recorder(httpx.Response(500, text="oops"))
        with pytest.raises(KnowledgeSourceError):
            await self.make(handler).search("X")
        assert len(handler.requests) == 1
