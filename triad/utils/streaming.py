"""
Streaming utilities for async producers and consumers.
"""

import asyncio
from typing import AsyncGenerator, Generic, TypeVar

T = TypeVar("T")

_SENTINEL = object()


class StreamBuffer(Generic[T]):
    """
    Ordered single-producer / single-consumer buffer with backpressure.
    
    Usage:
        buffer = StreamBuffer[str]()
        
        # Producer
        await buffer.put("Hello")
        await buffer.close()
        
        # Consumer
        async for item in buffer:
            print(item)
    
    A consumer that stops reading calls ``abandon()``; subsequent ``put``
    calls raise and ``close`` becomes a no-op so the producer never blocks
    on a queue nobody drains.
    """
    
    def __init__(self, max_size: int = 100):
        self.max_size = max_size
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._closed = False
        self._abandoned = False
    
    @property
    def closed(self) -> bool:
        return self._closed
    
    @property
    def abandoned(self) -> bool:
        return self._abandoned
    
    async def put(self, item: T) -> None:
        """Add an item to the buffer."""
        if self._closed or self._abandoned:
            raise RuntimeError("Buffer is closed")
        await self._queue.put(item)
    
    async def close(self) -> None:
        """Close the buffer. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._abandoned:
            return
        try:
            self._queue.put_nowait(_SENTINEL)
        except asyncio.QueueFull:
            await self._queue.put(_SENTINEL)
    
    def abandon(self) -> None:
        """Mark the consumer as gone."""
        self._abandoned = True
    
    async def __aiter__(self) -> AsyncGenerator[T, None]:
        """Iterate over items in the buffer until it is closed."""
        while True:
            item = await self._queue.get()
            if item is _SENTINEL:
                break
            yield item
