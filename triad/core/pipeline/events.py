"""
Pipeline progress events.

Every observable step of a run is one immutable event. The set of kinds
is closed; consumers switch on ``type`` in the serialized form.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal, Optional


class EventKind(str, Enum):
    """Wire names of the event kinds."""
    PLANNING_START = "planning-start"
    PLAN_PRODUCED = "plan-produced"
    DELEGATE = "delegate"
    RESEARCH_START = "research-start"
    RESEARCH_THINKING = "research-thinking"
    RESEARCH_TOOL_CALL = "research-tool-call"
    RESEARCH_TOOL_RESULT = "research-tool-result"
    RESEARCH_DONE = "research-done"
    SYNTHESIS_START = "synthesis-start"
    SYNTHESIS_DONE = "synthesis-done"
    PIPELINE_DONE = "pipeline-done"
    ERROR = "error"


@dataclass(frozen=True)
class AgentEvent:
    """Base class; subclasses set ``kind`` and implement ``payload``."""

    kind: ClassVar[EventKind]

    @property
    def type(self) -> str:
        return self.kind.value

    def payload(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form: ``{"type": <kind>, ...payload}``."""
        return {"type": self.kind.value, **self.payload()}

    def to_sse(self) -> dict[str, str]:
        """Frame for ``EventSourceResponse``."""
        return {"event": self.kind.value, "data": json.dumps(self.to_dict())}


@dataclass(frozen=True)
class PlanningStart(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.PLANNING_START
    message: str = ""

    def payload(self) -> dict[str, Any]:
        return {"message": self.message}


@dataclass(frozen=True)
class PlanProduced(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.PLAN_PRODUCED
    search_term: str = ""
    response_format: str = ""

    def payload(self) -> dict[str, Any]:
        return {"searchTerm": self.search_term, "responseFormat": self.response_format}


@dataclass(frozen=True)
class Delegate(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.DELEGATE
    to: Literal["researcher", "synthesizer"] = "researcher"
    instructions: str = ""

    def payload(self) -> dict[str, Any]:
        return {"to": self.to, "instructions": self.instructions}


@dataclass(frozen=True)
class ResearchStart(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.RESEARCH_START


@dataclass(frozen=True)
class ResearchThinking(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.RESEARCH_THINKING
    text: str = ""

    def payload(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class ResearchToolCall(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.RESEARCH_TOOL_CALL
    tool: str = ""
    input: dict[str, Any] = field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        return {"tool": self.tool, "input": dict(self.input)}


@dataclass(frozen=True)
class ResearchToolResult(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.RESEARCH_TOOL_RESULT
    tool: str = ""
    preview: str = ""
    count: Optional[int] = None

    def payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tool": self.tool, "preview": self.preview}
        if self.count is not None:
            data["count"] = self.count
        return data


@dataclass(frozen=True)
class ResearchDone(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.RESEARCH_DONE
    truncated: bool = False

    def payload(self) -> dict[str, Any]:
        # Only present when the iteration cap cut the research short
        return {"truncated": True} if self.truncated else {}


@dataclass(frozen=True)
class SynthesisStart(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.SYNTHESIS_START


@dataclass(frozen=True)
class SynthesisDone(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.SYNTHESIS_DONE
    answer: str = ""

    def payload(self) -> dict[str, Any]:
        return {"answer": self.answer}


@dataclass(frozen=True)
class PipelineDone(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.PIPELINE_DONE


@dataclass(frozen=True)
class ErrorEvent(AgentEvent):
    kind: ClassVar[EventKind] = EventKind.ERROR
    message: str = ""

    def payload(self) -> dict[str, Any]:
        return {"message": self.message}
