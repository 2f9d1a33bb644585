"""Utility modules."""
from .logging import get_logger, setup_logging, run_context
from .retry import with_retry, retry_async, RetryConfig
from .streaming import StreamBuffer

__all__ = [
    "get_logger",
    "setup_logging",
    "run_context",
    "with_retry",
    "retry_async",
    "RetryConfig",
    "StreamBuffer",
]
