"""
Anthropic Messages API backend.

Built on the official ``anthropic`` SDK. Tool-use blocks map one-to-one
onto :class:`ToolRequest` / :class:`ToolResult` segments; SDK errors are
translated into the Triad ``LLMError`` hierarchy so the shared retry
policy can decide what is transient.
"""

import time
from typing import Any, Optional, Sequence

import anthropic
import httpx

from triad.config import get_settings
from triad.services.llm.base import ModelClient
from triad.services.llm.models import (
    GenerationConfig,
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
    LLMAuthenticationError,
    LLMConnectionError,
    LLMModelNotFoundError,
    LLMRateLimitError,
    LLMResponseError,
    LLMServerError,
    LLMTimeoutError,
)
from triad.utils.logging import get_logger
from triad.utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)

TRANSIENT_ERRORS = (LLMTimeoutError, LLMConnectionError, LLMRateLimitError, LLMServerError)

# Anthropic signals overload with a non-standard status
OVERLOADED_STATUS = 529


def encode_segment(segment) -> dict[str, Any]:
    """Encode one content segment as an Anthropic content block."""
    match segment:
        case TextSegment(text=text):
            return {"type": "text", "text": text}
        case ToolRequest(id=id_, name=name, input=input_):
            return {"type": "tool_use", "id": id_, "name": name, "input": input_}
        case ToolResult(tool_use_id=tool_use_id, content=content):
            return {"type": "tool_result", "tool_use_id": tool_use_id, "content": content}
    raise TypeError(f"Unsupported content segment: {segment!r}")


def decode_block(block):
    """Decode an SDK content block; unknown block types are dropped."""
    match getattr(block, "type", None):
        case "text":
            return TextSegment(block.text or "")
        case "tool_use":
            return ToolRequest(id=block.id, name=block.name or "", input=dict(block.input or {}))
    return None


class AnthropicService(ModelClient):
    """
    Claude models via the Anthropic Messages API.
    """

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.llm.anthropic_api_key
        self.base_url = base_url or settings.llm.anthropic_base_url
        self.api_version = settings.llm.anthropic_version
        self.timeout = timeout or settings.llm.timeout
        self.temperature = settings.llm.temperature
        self._verify_ssl = settings.llm.verify_ssl
        self._transport = transport

        retries = settings.llm.max_retries if max_retries is None else max_retries
        self._retry = RetryConfig(
            max_attempts=retries + 1,
            base_delay=1.0,
            exceptions=TRANSIENT_ERRORS,
        )

        self._client: Optional[anthropic.AsyncAnthropic] = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Get or create the SDK client."""
        if self._client is None:
            # Retries are ours; the SDK makes a single attempt per call
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers={"anthropic-version": self.api_version},
                http_client=httpx.AsyncClient(
                    verify=self._verify_ssl,
                    transport=self._transport,
                ),
            )
        return self._client

    async def close(self):
        """Close the SDK client and its connection pool."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    def build_request(
        self,
        system: str,
        history: Sequence[Turn],
        config: GenerationConfig,
        tools: Optional[Sequence[ToolSpec]] = None,
    ) -> dict[str, Any]:
        """Keyword arguments for ``messages.create``."""
        request: dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "system": system,
            "messages": [
                {
                    "role": turn.role.value,
                    "content": [encode_segment(s) for s in turn.segments],
                }
                for turn in history
            ],
        }
        if tools:
            request["tools"] = [
                {
                    "name": t.name,
                    "description": t.description,
                    "input_schema": t.input_schema,
                }
                for t in tools
            ]
        return request

    async def _create(self, request: dict[str, Any]):
        model = request["model"]
        if not self.api_key:
            raise LLMAuthenticationError("Anthropic")
        try:
            return await self._get_client().messages.create(**request)
        except anthropic.APITimeoutError as e:
            logger.error(f"Anthropic timeout for model {model}")
            raise LLMTimeoutError(model, self.timeout) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"Cannot connect to Anthropic at {self.base_url}")
            raise LLMConnectionError("Anthropic", str(e)) from e
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise LLMAuthenticationError("Anthropic") from e
        except anthropic.NotFoundError as e:
            raise LLMModelNotFoundError(model) from e
        except anthropic.RateLimitError as e:
            logger.warning(f"Anthropic rate limited model {model}")
            raise LLMRateLimitError(
                "Anthropic", e.status_code, retry_after=_retry_after(e.response)
            ) from e
        except anthropic.APIStatusError as e:
            status = e.status_code
            logger.error(f"Anthropic HTTP error: {status}")
            if status == OVERLOADED_STATUS:
                raise LLMRateLimitError(
                    "Anthropic", status, retry_after=_retry_after(e.response)
                ) from e
            if status >= 500:
                raise LLMServerError("Anthropic", status) from e
            raise LLMResponseError(model, e.message) from e

    async def invoke(
        self,
        system: str,
        history: Sequence[Turn],
        config: GenerationConfig,
        tools: Optional[Sequence[ToolSpec]] = None,
    ) -> ModelResponse:
        request = self.build_request(system, history, config, tools)

        logger.debug(f"Invoking {config.model} with {len(history)} turns")
        start_time = time.time()

        message = await retry_async(self._create, request, config=self._retry)

        generation_time = time.time() - start_time
        segments = [
            seg for seg in (decode_block(b) for b in getattr(message, "content", None) or [])
            if seg is not None
        ]
        usage_raw = getattr(message, "usage", None)
        usage = TokenUsage(
            prompt_tokens=getattr(usage_raw, "input_tokens", 0) or 0,
            completion_tokens=getattr(usage_raw, "output_tokens", 0) or 0,
        )
        stop_reason = StopReason.parse(getattr(message, "stop_reason", None))

        logger.info(
            f"{config.model} answered in {generation_time:.2f}s "
            f"(stop={stop_reason.value}, tokens={usage.total_tokens})"
        )

        return ModelResponse(
            segments=segments,
            stop_reason=stop_reason,
            model=getattr(message, "model", None) or config.model,
            usage=usage,
            generation_time=generation_time,
        )

    async def health_check(self) -> bool:
        """Anthropic has no unauthenticated ping; check key presence and list models."""
        if not self.api_key:
            return False
        try:
            await self._get_client().models.list(limit=1)
            return True
        except Exception as e:
            logger.warning(f"Anthropic health check failed: {e}")
            return False


def _retry_after(response: httpx.Response) -> Optional[float]:
    try:
        return float(response.headers["retry-after"])
    except (KeyError, ValueError):
        return None
