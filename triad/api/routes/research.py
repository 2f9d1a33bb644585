"""
Research API Routes.

Runs the agent pipeline for a question and streams its events over SSE.
"""

import asyncio
import time
from typing import AsyncGenerator

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from triad.api.metrics import RunRecorder
from triad.api.schemas import PlanInfo, PromptsResponse, ResearchRequest, ResearchResult
from triad.config import get_settings
from triad.core.pipeline import (
    SYSTEM_PROMPTS,
    AgentRole,
    EventKind,
    ModelSelection,
    Orchestrator,
)
from triad.utils.logging import get_logger


logger = get_logger(__name__)
router = APIRouter(prefix="/research", tags=["research"])

_orchestrator: Orchestrator | None = None

# Run concurrency gate (asyncio.Semaphore, lazily initialized)
_run_semaphore: asyncio.Semaphore | None = None


def _get_run_semaphore() -> asyncio.Semaphore:
    """Get or create the pipeline concurrency semaphore."""
    global _run_semaphore
    if _run_semaphore is None:
        settings = get_settings()
        _run_semaphore = asyncio.Semaphore(settings.api.max_concurrent_runs)
        logger.info(f"Run semaphore initialized: max_concurrent={settings.api.max_concurrent_runs}")
    return _run_semaphore


def get_orchestrator() -> Orchestrator:
    """Shared orchestrator; each run still owns its own state."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator()
    return _orchestrator


async def shutdown_orchestrator() -> None:
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.close()
        _orchestrator = None


def _selection_from(request: ResearchRequest) -> ModelSelection:
    return ModelSelection.from_settings(
        planner=request.supervisor_model,
        researcher=request.researcher_model,
        synthesizer=request.synthesizer_model,
    )


@router.post("/stream")
async def stream_research(
    request: ResearchRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """
    Run the pipeline with SSE streaming.

    Each SSE message is named after the event kind and carries the event
    as a JSON object. The stream ends after ``pipeline-done`` or ``error``.
    """
    selection = _selection_from(request)
    logger.info(f"Starting streaming run: {request.question[:50]}...")

    async def event_generator() -> AsyncGenerator[dict, None]:
        async with _get_run_semaphore():
            with RunRecorder() as recorder:
                events = orchestrator.stream(request.question, selection)
                try:
                    async for event in events:
                        recorder.observe(event)
                        yield event.to_sse()
                finally:
                    await events.aclose()

    return EventSourceResponse(event_generator())


@router.post("/", response_model=ResearchResult)
async def run_research(
    request: ResearchRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """
    Run the pipeline and return once it finishes (blocking).

    For progress updates, use the /stream endpoint.
    """
    selection = _selection_from(request)
    start_time = time.time()
    result = ResearchResult(status="error")

    async with _get_run_semaphore():
        with RunRecorder() as recorder:
            async for event in orchestrator.stream(request.question, selection):
                recorder.observe(event)
                result.events.append(event.to_dict())

                if event.kind is EventKind.PLAN_PRODUCED:
                    result.plan = PlanInfo(
                        search_term=event.search_term,
                        response_format=event.response_format,
                    )
                elif event.kind is EventKind.SYNTHESIS_DONE:
                    result.answer = event.answer
                elif event.kind is EventKind.PIPELINE_DONE:
                    result.status = "complete"
                elif event.kind is EventKind.ERROR:
                    result.error = event.message

    result.duration_ms = int((time.time() - start_time) * 1000)
    return result


@router.get("/prompts", response_model=PromptsResponse)
async def get_prompts():
    """System instructions of each role, for display."""
    return PromptsResponse(
        planner=SYSTEM_PROMPTS[AgentRole.PLANNER],
        researcher=SYSTEM_PROMPTS[AgentRole.RESEARCHER],
        synthesizer=SYSTEM_PROMPTS[AgentRole.SYNTHESIZER],
    )
