"""
Backend selection by model identifier.

Identifiers of the form ``ollama/<model>`` go to the local Ollama
instance; anything else is treated as an Anthropic model name.
"""

from typing import Optional, Sequence

from triad.services.llm.anthropic import AnthropicService
from triad.services.llm.base import ModelClient
from triad.services.llm.ollama import OllamaService
from triad.services.llm.models import GenerationConfig, ModelResponse, ToolSpec, Turn
from triad.utils.logging import get_logger

logger = get_logger(__name__)

OLLAMA_PREFIX = "ollama/"


class ModelRouter:
    """Routes each call to the backend that serves the requested model."""

    def __init__(
        self,
        anthropic: Optional[ModelClient] = None,
        ollama: Optional[ModelClient] = None,
    ):
        self._anthropic = anthropic
        self._ollama = ollama

    @property
    def anthropic(self) -> ModelClient:
        if self._anthropic is None:
            self._anthropic = AnthropicService()
        return self._anthropic

    @property
    def ollama(self) -> ModelClient:
        if self._ollama is None:
            self._ollama = OllamaService()
        return self._ollama

    def resolve(self, model: str) -> tuple[ModelClient, str]:
        """Return the backend and the backend-local model name."""
        if model.startswith(OLLAMA_PREFIX):
            return self.ollama, model[len(OLLAMA_PREFIX):]
        return self.anthropic, model

    async def invoke(
        self,
        model: str,
        system: str,
        history: Sequence[Turn],
        max_tokens: int,
        temperature: float = 0.0,
        tools: Optional[Sequence[ToolSpec]] = None,
    ) -> ModelResponse:
        backend, backend_model = self.resolve(model)
        logger.debug(f"Routing {model} to {backend.provider_name}")
        config = GenerationConfig(
            model=backend_model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return await backend.invoke(system, history, config, tools=tools)

    async def close(self) -> None:
        for backend in (self._anthropic, self._ollama):
            if backend is not None:
                await backend.close()
