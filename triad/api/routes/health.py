"""
Health Check Routes.

Provides health and readiness endpoints for monitoring.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends

from triad.api.routes.research import get_orchestrator
from triad.api.schemas import HealthResponse, ServiceHealth
from triad.config import get_settings
from triad.core.pipeline import Orchestrator
from triad.services.llm.router import OLLAMA_PREFIX
from triad.utils.logging import get_logger


logger = get_logger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


async def _check(name: str, probe: Callable[[], Awaitable[bool]]) -> ServiceHealth:
    start = time.time()
    try:
        healthy = await probe()
        return ServiceHealth(
            name=name,
            healthy=healthy,
            latency_ms=(time.time() - start) * 1000,
            error=None if healthy else "Service check failed",
        )
    except Exception as e:
        return ServiceHealth(name=name, healthy=False, error=str(e))


async def _check_services(orchestrator: Orchestrator) -> list[ServiceHealth]:
    """Check the knowledge source and only the model backends the configured roles use."""
    backends = {}
    for model in orchestrator.settings.llm.models.model_dump().values():
        backend, _ = orchestrator.router.resolve(model)
        name = "ollama" if model.startswith(OLLAMA_PREFIX) else "anthropic"
        backends.setdefault(name, backend)

    checks = [_check(name, backend.health_check) for name, backend in backends.items()]
    checks.append(_check("wikipedia", orchestrator.knowledge.health_check))
    return list(await asyncio.gather(*checks))


@router.get("/", response_model=HealthResponse)
async def health_check(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """
    Comprehensive health check.
    
    Checks the model backends in use and the knowledge source.
    """
    settings = get_settings()
    services = await _check_services(orchestrator)
    
    if all(s.healthy for s in services):
        status = "healthy"
    elif any(s.healthy for s in services):
        status = "degraded"
    else:
        status = "unhealthy"
    
    return HealthResponse(
        status=status,
        version=settings.version,
        services=services,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/live")
async def liveness():
    """Liveness probe: 200 if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Readiness probe: reports the first unavailable dependency."""
    for service in await _check_services(orchestrator):
        if not service.healthy:
            return {"status": "not_ready", "reason": f"{service.name} unavailable"}
    
    return {"status": "ready"}


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    from triad.api.metrics import metrics_response
    return metrics_response()
