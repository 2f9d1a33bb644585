"""
FastAPI Application.

Main entry point for the Triad API.
"""

import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from triad.api.metrics import PrometheusMiddleware, set_app_info
from triad.api.routes import health_router, research_router
from triad.api.routes.research import shutdown_orchestrator
from triad.config import Settings, get_settings
from triad.services.llm.ollama import OllamaService
from triad.services.llm.router import OLLAMA_PREFIX
from triad.utils.exceptions import KnowledgeSourceError, LLMError, TriadError
from triad.utils.logging import get_logger, setup_logging


logger = get_logger(__name__)

_OPEN_PATHS = frozenset({"/", "/docs", "/redoc", "/openapi.json", "/health", "/health/", "/health/live"})


async def _startup_checks(settings: Settings) -> None:
    """
    Warn about configuration that will make runs fail.

    Never blocks startup: a missing key or an unpulled model is reported
    so it can be fixed while the server is up.
    """
    roles = settings.llm.models.model_dump()
    local = {role: m[len(OLLAMA_PREFIX):] for role, m in roles.items() if m.startswith(OLLAMA_PREFIX)}

    if len(local) < len(roles) and not settings.llm.anthropic_api_key:
        logger.warning(
            "No Anthropic API key configured but "
            f"{', '.join(r for r in roles if r not in local)} default to Anthropic models. "
            "Set ANTHROPIC_API_KEY or use 'ollama/<model>' identifiers."
        )

    if not local:
        return

    ollama = OllamaService()
    try:
        pulled = set(await ollama.list_models())
    finally:
        await ollama.close()

    if not pulled:
        logger.warning(f"Ollama at {settings.llm.ollama_base_url} is unreachable or has no models")
        return

    for role, model in local.items():
        if model not in pulled and f"{model}:latest" not in pulled:
            logger.warning(f"Model '{model}' ({role}) is not pulled. Run: ollama pull {model}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()
    setup_logging(level=settings.logging.level)

    logger.info(f"Starting Triad API v{settings.version} ({settings.environment})")
    await _startup_checks(settings)

    if settings.api.host not in ("127.0.0.1", "localhost", "::1"):
        logger.warning(
            f"Binding to {settings.api.host} exposes Triad to your network. "
            "Set TRIAD_API_HOST=127.0.0.1 for localhost-only access."
        )

    yield

    logger.info("Shutting down Triad API")
    await shutdown_orchestrator()


def _status_for(exc: TriadError) -> int:
    if isinstance(exc, (LLMError, KnowledgeSourceError)):
        return 502
    return 500


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    is_production = settings.environment == "production"

    app = FastAPI(
        title="Triad API",
        description="""
        A planner, a tool-using researcher and a synthesizer answer a question
        together; every step is streamed to the client as it happens.

        ## Endpoints

        - `POST /api/v1/research/stream` - Run the pipeline with SSE streaming
        - `POST /api/v1/research/` - Run the pipeline and return the result (blocking)
        - `GET /api/v1/research/prompts` - System instructions of each role
        - `GET /health/` - Health check
        """,
        version=settings.version,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        lifespan=lifespan,
    )

    cors_origins = settings.api.cors_origins
    if is_production and "*" in cors_origins:
        logger.warning("Ignoring wildcard CORS origin in production; list origins explicitly.")
        cors_origins = [o for o in cors_origins if o != "*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    if settings.api.require_api_key and not settings.api.api_key:
        logger.error("TRIAD_API_REQUIRE_API_KEY is set but TRIAD_API_API_KEY is empty; key check disabled.")
    elif settings.api.require_api_key:
        expected_key = settings.api.api_key

        @app.middleware("http")
        async def api_key_guard(request: Request, call_next):
            if request.url.path in _OPEN_PATHS:
                return await call_next(request)
            if not secrets.compare_digest(request.headers.get("X-API-Key", ""), expected_key):
                return JSONResponse(
                    status_code=401,
                    content={"error": "UNAUTHORIZED", "message": "Missing or invalid X-API-Key header"},
                )
            return await call_next(request)

    app.add_middleware(PrometheusMiddleware)
    set_app_info(version=settings.version, environment=settings.environment)

    @app.exception_handler(TriadError)
    async def triad_error_handler(request: Request, exc: TriadError):
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        body = exc.to_dict(safe=is_production)
        body["timestamp"] = datetime.now(timezone.utc).isoformat()
        return JSONResponse(status_code=_status_for(exc), content=body)

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    app.include_router(research_router, prefix="/api/v1")
    app.include_router(health_router)

    @app.get("/")
    async def root():
        return {
            "name": "Triad API",
            "version": settings.version,
            "roles": settings.llm.models.model_dump(),
            "docs": None if is_production else "/docs",
        }

    return app


app = create_app()
