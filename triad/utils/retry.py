"""
Retry with exponential backoff for transient backend failures.

A failure is retried when it matches ``RetryConfig.exceptions`` and, for
Triad errors, is flagged ``recoverable``. A ``retry_after`` hint carried by
the exception (rate limiting) stretches the computed delay.
"""

import asyncio
import random
from dataclasses import dataclass
from functools import wraps
from typing import Awaitable, Callable, Optional, Type, TypeVar

from triad.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    exceptions: tuple[Type[Exception], ...] = (Exception,)

    def should_retry(self, exc: Exception) -> bool:
        return isinstance(exc, self.exceptions) and getattr(exc, "recoverable", True)

    def delay_for(self, attempt: int, exc: Optional[Exception] = None) -> float:
        """Seconds to wait after the given zero-based failed attempt."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()

        hint = getattr(exc, "retry_after", None)
        if hint:
            delay = min(max(delay, hint), self.max_delay)
        return delay


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args,
    config: Optional[RetryConfig] = None,
    **kwargs,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying transient failures.

    The last failure is re-raised unchanged once attempts run out or a
    failure is not retryable.
    """
    config = config or RetryConfig()
    name = getattr(func, "__qualname__", repr(func))

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if attempt >= config.max_attempts or not config.should_retry(e):
                if attempt > 1:
                    logger.error(f"{name} failed after {attempt} attempts: {e}")
                raise

            delay = config.delay_for(attempt - 1, e)
            logger.warning(
                f"{name} attempt {attempt}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("max_attempts must be at least 1")


def with_retry(
    config: Optional[RetryConfig] = None,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[Type[Exception], ...] = (Exception,),
) -> Callable:
    """
    Decorator form of :func:`retry_async` for coroutine functions.

    Usage:
        @with_retry(max_attempts=2, exceptions=(KnowledgeSourceTimeoutError,))
        async def search(self, query): ...
    """
    config = config or RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        exceptions=exceptions,
    )

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_async(func, *args, config=config, **kwargs)

        return wrapper

    return decorator
