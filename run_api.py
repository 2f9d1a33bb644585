"""
Start the Triad API with uvicorn (no hot reload).
"""

import uvicorn

from triad.config import get_settings


def main() -> None:
    settings = get_settings()
    workers = max(settings.api.workers, 1)

    # Run limits are per process
    print(f"Triad API on http://{settings.api.host}:{settings.api.port}")
    print(
        f"{workers} worker(s), up to {settings.api.max_concurrent_runs} "
        f"concurrent runs each"
    )
    print(
        f"Models: planner={settings.llm.models.planner} "
        f"researcher={settings.llm.models.researcher} "
        f"synthesizer={settings.llm.models.synthesizer}"
    )

    uvicorn.run(
        "triad.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        workers=workers,
        reload=False,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
