"""
LLM service models.

Conversation history is a list of :class:`Turn` objects, each carrying
one or more content segments. A segment is exactly one of
:class:`TextSegment`, :class:`ToolRequest` or :class:`ToolResult`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class LLMRole(str, Enum):
    """Author of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(str, Enum):
    """Why the model ended its response."""
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    OTHER = "other"
    
    @classmethod
    def parse(cls, raw: Optional[str]) -> "StopReason":
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class TextSegment:
    text: str


@dataclass(frozen=True)
class ToolRequest:
    """A model-issued request to run a tool. ``id`` pairs it with its result."""
    
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """Textual outcome of a :class:`ToolRequest`, echoing the request id."""
    
    tool_use_id: str
    content: str


ContentSegment = Union[TextSegment, ToolRequest, ToolResult]


@dataclass
class Turn:
    """A single message in the conversation history."""
    
    role: LLMRole
    segments: list[ContentSegment]
    
    @classmethod
    def user_text(cls, text: str) -> "Turn":
        return cls(role=LLMRole.USER, segments=[TextSegment(text)])


@dataclass(frozen=True)
class ToolSpec:
    """Tool definition advertised to the model."""
    
    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class GenerationConfig:
    """Per-call generation settings."""
    
    model: str
    max_tokens: int = 1024
    temperature: float = 0.0


@dataclass
class TokenUsage:
    """Token usage statistics."""
    
    prompt_tokens: int = 0
    completion_tokens: int = 0
    
    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class ModelResponse:
    """Decoded model response: ordered segments plus the stop signal."""
    
    segments: list[ContentSegment]
    stop_reason: StopReason
    model: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    generation_time: float = 0.0
    
    @property
    def texts(self) -> list[str]:
        return [s.text for s in self.segments if isinstance(s, TextSegment)]
    
    @property
    def tool_requests(self) -> list[ToolRequest]:
        return [s for s in self.segments if isinstance(s, ToolRequest)]
    
    def first_text(self) -> str:
        """Text of the first text segment, or an empty string."""
        texts = self.texts
        return texts[0] if texts else ""
