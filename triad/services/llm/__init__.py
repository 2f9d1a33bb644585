"""LLM Service - Anthropic and Ollama backends."""
from .base import ModelClient
from .anthropic import AnthropicService
from .ollama import OllamaService
from .router import ModelRouter
from .models import (
    ContentSegment,
    GenerationConfig,
    LLMRole,
    ModelResponse,
    StopReason,
    TextSegment,
    ToolRequest,
    ToolResult,
    ToolSpec,
    Turn,
)

__all__ = [
    "ModelClient",
    "AnthropicService",
    "OllamaService",
    "ModelRouter",
    "ContentSegment",
    "GenerationConfig",
    "LLMRole",
    "ModelResponse",
    "StopReason",
    "TextSegment",
    "ToolRequest",
    "ToolResult",
    "ToolSpec",
    "Turn",
]
