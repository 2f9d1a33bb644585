"""
Ollama LLM backend.

Local inference via Ollama's ``/api/chat`` endpoint, including its
function-calling support. Ollama does not always assign ids to tool
calls, so ids are minted here and mapped back to tool names when the
results are sent on the next turn.
"""

import time
import uuid
from typing import Any, Optional, Sequence

import httpx

from triad.config import get_settings
from triad.services.llm.base import ModelClient
from triad.services.llm.models import (
    GenerationConfig,
    LLMRole,
    ModelResponse,
    StopReason,
    TextSegment,
    TokenUsage,
    ToolRequest,
    ToolResult,
    ToolSpec,
    Turn,
)
from triad.utils.exceptions import (
    LLMConnectionError,
    LLMModelNotFoundError,
    LLMResponseError,
    LLMServerError,
    LLMTimeoutError,
)
from triad.utils.logging import get_logger
from triad.utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)


class OllamaService(ModelClient):
    """
    Ollama LLM service implementation.

    Provides local LLM inference via Ollama's REST API.
    """

    provider_name = "ollama"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.llm.ollama_base_url
        self.timeout = timeout or settings.llm.timeout
        self._verify_ssl = settings.llm.verify_ssl
        self._transport = transport

        retries = settings.llm.max_retries if max_retries is None else max_retries
        self._retry = RetryConfig(
            max_attempts=retries + 1,
            exceptions=(LLMTimeoutError, LLMConnectionError, LLMServerError),
        )

        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                base_url=self.base_url,
                verify=self._verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def build_messages(self, system: str, history: Sequence[Turn]) -> list[dict[str, Any]]:
        """Flatten segmented turns into Ollama chat messages."""
        messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
        tool_names: dict[str, str] = {}

        for turn in history:
            texts: list[str] = []
            calls: list[dict[str, Any]] = []
            results: list[dict[str, Any]] = []

            for segment in turn.segments:
                match segment:
                    case TextSegment(text=text):
                        texts.append(text)
                    case ToolRequest(id=id_, name=name, input=input_):
                        tool_names[id_] = name
                        calls.append({"function": {"name": name, "arguments": input_}})
                    case ToolResult(tool_use_id=tool_use_id, content=content):
                        results.append({
                            "role": "tool",
                            "content": content,
                            "tool_name": tool_names.get(tool_use_id, ""),
                        })

            if texts or calls:
                message: dict[str, Any] = {"role": turn.role.value, "content": "\n".join(texts)}
                if calls and turn.role == LLMRole.ASSISTANT:
                    message["tool_calls"] = calls
                messages.append(message)
            messages.extend(results)

        return messages

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        model = payload["model"]
        try:
            client = await self._get_client()
            response = await client.post("/api/chat", json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error(f"LLM timeout for model {model}")
            raise LLMTimeoutError(model, self.timeout) from e
        except httpx.ConnectError as e:
            logger.error(f"Cannot connect to Ollama at {self.base_url}")
            raise LLMConnectionError("Ollama", str(e)) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise LLMModelNotFoundError(model) from e
            logger.error(f"Ollama HTTP error: {status}")
            if status >= 500:
                raise LLMServerError("Ollama", status) from e
            raise LLMResponseError(model, f"HTTP {status}") from e
        except ValueError as e:
            raise LLMResponseError(model, f"Invalid JSON body: {e}") from e

    async def invoke(
        self,
        system: str,
        history: Sequence[Turn],
        config: GenerationConfig,
        tools: Optional[Sequence[ToolSpec]] = None,
    ) -> ModelResponse:
        payload: dict[str, Any] = {
            "model": config.model,
            "messages": self.build_messages(system, history),
            "stream": False,
            "options": {
                "temperature": config.temperature,
                "num_predict": config.max_tokens,
            },
        }
        if tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.input_schema,
                    },
                }
                for t in tools
            ]

        logger.debug(f"Chat with {config.model}: {len(history)} turns")
        start_time = time.time()

        data = await retry_async(self._post, payload, config=self._retry)

        generation_time = time.time() - start_time
        message = data.get("message", {})

        segments: list = []
        if message.get("content"):
            segments.append(TextSegment(message["content"]))
        for call in message.get("tool_calls") or []:
            function = call.get("function", {})
            segments.append(ToolRequest(
                id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                name=function.get("name", ""),
                input=function.get("arguments") or {},
            ))

        if message.get("tool_calls"):
            stop_reason = StopReason.TOOL_USE
        elif data.get("done_reason") == "length":
            stop_reason = StopReason.MAX_TOKENS
        else:
            stop_reason = StopReason.END_TURN

        usage = TokenUsage(
            prompt_tokens=data.get("prompt_eval_count", 0),
            completion_tokens=data.get("eval_count", 0),
        )

        logger.info(
            f"Generated {usage.completion_tokens} tokens with {config.model} "
            f"in {generation_time:.2f}s (stop={stop_reason.value})"
        )

        return ModelResponse(
            segments=segments,
            stop_reason=stop_reason,
            model=config.model,
            usage=usage,
            generation_time=generation_time,
        )

    async def list_models(self) -> list[str]:
        """List models pulled into the local Ollama instance."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags")
            response.raise_for_status()
            models = response.json().get("models", [])
            return [m.get("name", "") for m in models if m.get("name")]
        except Exception as e:
            logger.error(f"Failed to list models: {e}")
            return []

    async def health_check(self) -> bool:
        """Check if Ollama is available."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags")
            return response.status_code == 200
        except Exception as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False
