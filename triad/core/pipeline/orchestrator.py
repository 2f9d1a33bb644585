"""
Phase sequencer.

Runs planning, research and synthesis strictly in order for one question,
writing progress events to an :class:`EventEmitter`. Failures are caught
once here and surface as a single ``error`` event.
"""

import asyncio
import contextlib
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncGenerator, Optional

from triad.config import Settings, get_settings
from triad.core.pipeline.adapter import RoleModelAdapter
from triad.core.pipeline.emitter import EventEmitter
from triad.core.pipeline.events import (
    AgentEvent,
    Delegate,
    ErrorEvent,
    PipelineDone,
    PlanningStart,
    PlanProduced,
    ResearchStart,
    SynthesisDone,
    SynthesisStart,
)
from triad.core.pipeline.plan import Plan, parse_plan
from triad.core.pipeline.prompts import (
    PLANNING_START_MESSAGE,
    researcher_instruction,
    synthesizer_instruction,
)
from triad.core.pipeline.research import ResearchFindings, ResearchLoop
from triad.core.pipeline.roles import AgentRole, ModelSelection
from triad.core.pipeline.tools import ToolInvoker
from triad.services.knowledge.base import KnowledgeSource
from triad.services.knowledge.wikipedia import WikipediaService
from triad.services.llm.models import Turn
from triad.services.llm.router import ModelRouter
from triad.utils.exceptions import PipelineCancelledError, TriadError
from triad.utils.logging import get_logger, run_context

logger = get_logger(__name__)


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass
class PipelineRun:
    """Transient state of one run; discarded when its stream closes."""

    question: str
    selection: ModelSelection
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: RunStatus = RunStatus.RUNNING
    plan: Optional[Plan] = None
    findings: Optional[ResearchFindings] = None
    answer: Optional[str] = None
    error: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    duration_seconds: float = 0.0


def error_message(exc: BaseException) -> str:
    """Human-readable message for the ``error`` event."""
    if isinstance(exc, TriadError):
        return exc.message
    return str(exc) or "Unknown error"


class Orchestrator:
    """
    Planner -> researcher -> synthesizer pipeline.

    Usage:
        orchestrator = Orchestrator()
        async for event in orchestrator.stream("What is X?", selection):
            print(event.to_dict())
    """

    def __init__(
        self,
        router: Optional[ModelRouter] = None,
        knowledge: Optional[KnowledgeSource] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.router = router or ModelRouter()
        self.knowledge = knowledge or WikipediaService()

    async def close(self) -> None:
        await self.router.close()
        await self.knowledge.close()

    async def run(
        self,
        question: str,
        selection: ModelSelection,
        emitter: EventEmitter,
    ) -> PipelineRun:
        """
        Execute one run, emitting events as it goes.

        Never raises for pipeline failures; the emitter is closed exactly
        once when this returns.
        """
        run = PipelineRun(question=question, selection=selection)
        with run_context(run_id=run.run_id):
            await self._supervise(run, emitter)
        return run

    async def _supervise(self, run: PipelineRun, emitter: EventEmitter) -> None:
        logger.info(f"Starting pipeline: {run.question[:80]}")

        try:
            await self._execute(run, emitter)
            run.status = RunStatus.COMPLETE
        except PipelineCancelledError:
            run.status = RunStatus.CANCELLED
            logger.info("Consumer disconnected; run stopped")
        except asyncio.CancelledError:
            run.status = RunStatus.CANCELLED
            logger.info("Run task cancelled")
            raise
        except Exception as e:
            run.status = RunStatus.ERROR
            run.error = error_message(e)
            logger.exception(f"Pipeline failed: {run.error}")
            with contextlib.suppress(PipelineCancelledError):
                await emitter.emit(ErrorEvent(message=run.error))
        finally:
            run.duration_seconds = time.time() - run.started_at
            await emitter.close()
            logger.info(
                f"Pipeline {run.status.value} "
                f"in {run.duration_seconds:.1f}s ({emitter.emitted} events)"
            )

    async def _execute(self, run: PipelineRun, emitter: EventEmitter) -> None:
        agent = self.settings.agent
        adapter = RoleModelAdapter(
            self.router,
            run.selection,
            agent_config=agent,
            temperature=self.settings.llm.temperature,
        )

        # Planning
        await emitter.emit(PlanningStart(message=PLANNING_START_MESSAGE))
        response = await adapter.invoke(AgentRole.PLANNER, [Turn.user_text(run.question)])
        run.plan = parse_plan(
            response.first_text(),
            question=run.question,
            default_format=agent.default_response_format,
        )
        await emitter.emit(PlanProduced(
            search_term=run.plan.search_term,
            response_format=run.plan.response_format,
        ))

        # Research
        instruction = researcher_instruction(run.plan.search_term)
        await emitter.emit(Delegate(to="researcher", instructions=instruction))
        await emitter.emit(ResearchStart())

        loop = ResearchLoop(
            adapter,
            ToolInvoker(self.knowledge, preview_chars=agent.preview_chars),
            emitter,
            max_iterations=agent.max_research_iterations,
        )
        run.findings = await loop.run(instruction, run.plan.search_term)

        # Synthesis
        synth_instruction = synthesizer_instruction(
            run.question, run.plan.response_format, run.findings.summary
        )
        await emitter.emit(Delegate(to="synthesizer", instructions=synth_instruction))
        await emitter.emit(SynthesisStart())

        response = await adapter.invoke(
            AgentRole.SYNTHESIZER, [Turn.user_text(synth_instruction)]
        )
        run.answer = response.first_text()

        await emitter.emit(SynthesisDone(answer=run.answer))
        await emitter.emit(PipelineDone())

    async def stream(
        self,
        question: str,
        selection: ModelSelection,
        max_buffer: int = 100,
    ) -> AsyncGenerator[AgentEvent, None]:
        """
        Run the pipeline in a task and yield its events in order.

        Closing the generator early (consumer disconnect) cancels the run.
        """
        emitter = EventEmitter(max_buffer=max_buffer)
        task = asyncio.create_task(self.run(question, selection, emitter))

        try:
            async for event in emitter:
                yield event
            await task
        finally:
            if not task.done():
                emitter.cancel()
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
