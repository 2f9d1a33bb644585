"""
Logging utilities for Triad.

Every record carries the id of the pipeline run (and the agent role)
that produced it, so interleaved runs can be told apart in one log.
Output is either a human-readable line or a single-line JSON object.
"""

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from triad.config import get_settings

CONTEXT_FIELDS = ("run_id", "role", "question")

_run_context: ContextVar[dict] = ContextVar("triad_run_context", default={})


@contextmanager
def run_context(**fields) -> Iterator[None]:
    """
    Attach fields to every record logged inside the block.

    Backed by a context variable, so each asyncio task sees only the
    context of its own run. Nested blocks extend the outer context.

    Usage:
        with run_context(run_id=run.run_id):
            logger.info("Planning")
    """
    token = _run_context.set({**_run_context.get(), **fields})
    try:
        yield
    finally:
        _run_context.reset(token)


def current_context() -> dict:
    return dict(_run_context.get())


class RunContextFilter(logging.Filter):
    """Copies the active run context onto each record; ``-`` when unset."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _run_context.get()
        for attr in CONTEXT_FIELDS:
            if not hasattr(record, attr):
                setattr(record, attr, context.get(attr, "-"))
        return True


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for production observability.

    Each log record is emitted as a single-line JSON object with fields
    ``timestamp``, ``level``, ``logger`` and ``message``, plus ``exception``
    and whichever run context fields are set.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for attr in CONTEXT_FIELDS:
            val = getattr(record, attr, None)
            if val not in (None, "-"):
                log_entry[attr] = val

        return json.dumps(log_entry, default=str)


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        format_string: Log format string; may use ``%(run_id)s`` and ``%(role)s``.
        log_file: Optional file to also write logs to. Defaults to config value.
    """
    settings = get_settings()

    level = level or settings.logging.level
    format_string = format_string or settings.logging.format
    log_file = log_file or settings.logging.file

    if settings.logging.json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(format_string)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    context_filter = RunContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=handlers,
        force=True,
    )

    # Quiet the HTTP client stack
    for logger_name in ["httpx", "httpcore", "anthropic", "asyncio"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name, typically __name__ of the module.
    """
    return logging.getLogger(name)
