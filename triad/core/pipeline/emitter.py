"""
Ordered event channel between a pipeline run and its consumer.
"""

from typing import AsyncGenerator

from triad.core.pipeline.events import AgentEvent
from triad.utils.exceptions import PipelineCancelledError
from triad.utils.logging import get_logger
from triad.utils.streaming import StreamBuffer

logger = get_logger(__name__)


class EventEmitter:
    """
    Append-only event channel.
    
    ``emit`` waits only on the buffer's own backpressure. Once the
    consumer calls ``cancel`` (or the channel is closed) further emits
    raise :class:`PipelineCancelledError`.
    """
    
    def __init__(self, max_buffer: int = 100):
        self._buffer: StreamBuffer[AgentEvent] = StreamBuffer(max_size=max_buffer)
        self.emitted = 0
    
    @property
    def cancelled(self) -> bool:
        return self._buffer.abandoned
    
    @property
    def closed(self) -> bool:
        return self._buffer.closed
    
    async def emit(self, event: AgentEvent) -> None:
        if self._buffer.closed or self._buffer.abandoned:
            raise PipelineCancelledError()
        await self._buffer.put(event)
        self.emitted += 1
        logger.debug(f"event #{self.emitted}: {event.type}")
    
    async def close(self) -> None:
        await self._buffer.close()
    
    def cancel(self) -> None:
        """Called from the consumer side when it stops reading."""
        if not self._buffer.abandoned:
            logger.info(f"Event consumer went away after {self.emitted} events")
        self._buffer.abandon()
    
    async def __aiter__(self) -> AsyncGenerator[AgentEvent, None]:
        async for event in self._buffer:
            yield event
