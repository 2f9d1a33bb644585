"""
Prometheus metrics for the Triad API.

Exposes request counters, latency histograms and pipeline-level
metrics that can be scraped by Prometheus at ``/health/metrics``.

Usage in ``app.py``::

    from triad.api.metrics import PrometheusMiddleware
    app.add_middleware(PrometheusMiddleware)
"""

import re
import time
from typing import Callable

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from triad.core.pipeline.events import AgentEvent, EventKind


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "triad_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "triad_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

PIPELINE_IN_PROGRESS = Gauge(
    "triad_pipeline_in_progress",
    "Number of pipeline runs currently streaming",
)

PIPELINE_RUNS = Counter(
    "triad_pipeline_runs_total",
    "Pipeline runs by outcome",
    ["status"],
)

PIPELINE_DURATION = Histogram(
    "triad_pipeline_duration_seconds",
    "Pipeline run duration in seconds",
    buckets=(1, 5, 10, 30, 60, 120, 300),
)

TOOL_CALLS = Counter(
    "triad_tool_calls_total",
    "Researcher tool calls",
    ["tool"],
)

APP_INFO = Info(
    "triad",
    "Triad application information",
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info metric (call once at startup)."""
    APP_INFO.info({"version": version, "environment": environment})


class RunRecorder:
    """
    Watches one run's event stream and records its metrics.

    Usage:
        with RunRecorder() as recorder:
            async for event in orchestrator.stream(...):
                recorder.observe(event)
    """

    def __init__(self):
        self.status = "cancelled"
        self._start = 0.0

    def __enter__(self) -> "RunRecorder":
        self._start = time.perf_counter()
        PIPELINE_IN_PROGRESS.inc()
        return self

    def observe(self, event: AgentEvent) -> None:
        if event.kind is EventKind.RESEARCH_TOOL_CALL:
            TOOL_CALLS.labels(tool=event.tool).inc()
        elif event.kind is EventKind.PIPELINE_DONE:
            self.status = "complete"
        elif event.kind is EventKind.ERROR:
            self.status = "error"

    def __exit__(self, *exc_info) -> None:
        PIPELINE_IN_PROGRESS.dec()
        PIPELINE_RUNS.labels(status=self.status).inc()
        PIPELINE_DURATION.observe(time.perf_counter() - self._start)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

def _normalise_path(path: str) -> str:
    """Collapse numeric path segments to reduce cardinality."""
    return re.sub(r"/\d+", "/{id}", path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that records Prometheus metrics per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = _normalise_path(request.url.path)

        if path.endswith("/metrics"):
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        status = str(response.status_code)
        REQUEST_COUNT.labels(method=method, endpoint=path, status_code=status).inc()
        REQUEST_LATENCY.labels(method=method, endpoint=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate a Prometheus-format ``/metrics`` response."""
    body = generate_latest(REGISTRY)
    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
