"""
Autonomous researcher loop.

The researcher model is called with the tool schema until it stops for
any reason other than tool use. Text it produces is emitted as it
arrives; every tool request in a turn is dispatched in order and the
results are returned to the model together in one user turn.
"""

from dataclasses import dataclass
from typing import Optional

from triad.core.pipeline.adapter import RoleModelAdapter
from triad.core.pipeline.emitter import EventEmitter
from triad.core.pipeline.events import (
    ResearchDone,
    ResearchThinking,
    ResearchToolCall,
    ResearchToolResult,
)
from triad.core.pipeline.prompts import research_seed
from triad.core.pipeline.roles import AgentRole
from triad.core.pipeline.tools import RESEARCHER_TOOLS, ToolInvoker
from triad.services.llm.models import LLMRole, StopReason, ToolResult, Turn
from triad.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ResearchFindings:
    summary: str
    iterations: int
    tool_calls: int = 0
    truncated: bool = False


class ResearchLoop:
    """
    Drives researcher model / tool exchanges for one research phase.

    Args:
        adapter: Role adapter used for the researcher model
        invoker: Tool dispatcher
        emitter: Event channel progress is written to
        max_iterations: Cap on model calls; ``None`` or ``0`` means unbounded
    """

    def __init__(
        self,
        adapter: RoleModelAdapter,
        invoker: ToolInvoker,
        emitter: EventEmitter,
        max_iterations: Optional[int] = None,
    ):
        self.adapter = adapter
        self.invoker = invoker
        self.emitter = emitter
        if max_iterations is not None and max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {max_iterations}")
        self.max_iterations = max_iterations or None

    async def run(self, instruction: str, search_term: str) -> ResearchFindings:
        history: list[Turn] = [Turn.user_text(research_seed(instruction, search_term))]
        gathered: list[str] = []
        iterations = 0
        tool_calls = 0

        while True:
            if self.max_iterations is not None and iterations >= self.max_iterations:
                logger.warning(
                    f"Research stopped at the {self.max_iterations}-call cap; "
                    "synthesizing from partial findings"
                )
                await self.emitter.emit(ResearchDone(truncated=True))
                return ResearchFindings(
                    summary="\n\n".join(gathered),
                    iterations=iterations,
                    tool_calls=tool_calls,
                    truncated=True,
                )

            iterations += 1
            response = await self.adapter.invoke(
                AgentRole.RESEARCHER, history, tools=RESEARCHER_TOOLS
            )

            for text in response.texts:
                if text.strip():
                    gathered.append(text)
                    await self.emitter.emit(ResearchThinking(text=text))

            requests = response.tool_requests
            if response.stop_reason != StopReason.TOOL_USE or not requests:
                summary = response.first_text()
                logger.info(
                    f"Research finished after {iterations} model calls, "
                    f"{tool_calls} tool calls (stop={response.stop_reason.value})"
                )
                await self.emitter.emit(ResearchDone())
                return ResearchFindings(
                    summary=summary,
                    iterations=iterations,
                    tool_calls=tool_calls,
                )

            results: list[ToolResult] = []
            for request in requests:
                await self.emitter.emit(ResearchToolCall(tool=request.name, input=request.input))
                outcome = await self.invoker.execute(request.name, request.input)
                tool_calls += 1
                await self.emitter.emit(ResearchToolResult(
                    tool=request.name,
                    preview=outcome.preview,
                    count=outcome.count,
                ))
                results.append(ToolResult(tool_use_id=request.id, content=outcome.content))
                gathered.append(outcome.content)

            history.append(Turn(role=LLMRole.ASSISTANT, segments=list(response.segments)))
            history.append(Turn(role=LLMRole.USER, segments=list(results)))
