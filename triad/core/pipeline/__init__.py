"""
Planner / researcher / synthesizer pipeline.

Components:
- Orchestrator: phase sequencer owning one PipelineRun per question
- ResearchLoop: autonomous tool-using researcher
- ToolInvoker: researcher tools backed by a knowledge source
- RoleModelAdapter: per-role model calls
- EventEmitter: ordered event channel to the consumer
"""

from .adapter import RoleModelAdapter
from .emitter import EventEmitter
from .events import (
    AgentEvent,
    Delegate,
    ErrorEvent,
    EventKind,
    PipelineDone,
    PlanningStart,
    PlanProduced,
    ResearchDone,
    ResearchStart,
    ResearchThinking,
    ResearchToolCall,
    ResearchToolResult,
    SynthesisDone,
    SynthesisStart,
)
from .orchestrator import Orchestrator, PipelineRun, RunStatus
from .plan import Plan, parse_plan
from .prompts import SYSTEM_PROMPTS
from .research import ResearchFindings, ResearchLoop
from .roles import AgentRole, ModelSelection
from .tools import RESEARCHER_TOOLS, ToolInvoker, ToolName, ToolOutcome

__all__ = [
    "RoleModelAdapter",
    "EventEmitter",
    "AgentEvent",
    "Delegate",
    "ErrorEvent",
    "EventKind",
    "PipelineDone",
    "PlanningStart",
    "PlanProduced",
    "ResearchDone",
    "ResearchStart",
    "ResearchThinking",
    "ResearchToolCall",
    "ResearchToolResult",
    "SynthesisDone",
    "SynthesisStart",
    "Orchestrator",
    "PipelineRun",
    "RunStatus",
    "Plan",
    "parse_plan",
    "SYSTEM_PROMPTS",
    "ResearchFindings",
    "ResearchLoop",
    "AgentRole",
    "ModelSelection",
    "RESEARCHER_TOOLS",
    "ToolInvoker",
    "ToolName",
    "ToolOutcome",
]
