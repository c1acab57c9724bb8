# File: tests/test_streaming.py
# Purpose: Stream observer contract and the queue-backed observer used by SSE routes
import asyncio

import pytest

from wpstudio.core.exceptions import StreamingError
from wpstudio.core.streaming import QueueStreamObserver, StreamObserver


async def drain(observer: QueueStreamObserver) -> list:
    return [event async for event in observer.events()]


class TestQueueStreamObserver:
    """Event ordering and the single terminal callback"""

    def test_satisfies_protocol(self):
        assert isinstance(QueueStreamObserver(), StreamObserver)

    @pytest.mark.asyncio
    async def test_chunks_then_completed(self):
        observer = QueueStreamObserver()
        observer.on_chunk("Hal")
        observer.on_chunk("lo")
        observer.on_completed()

        assert await drain(observer) == [("chunk", "Hal"), ("chunk", "lo"), ("completed", None)]
        assert observer.finished

    @pytest.mark.asyncio
    async def test_first_terminal_event_wins(self):
        observer = QueueStreamObserver()
        error = StreamingError("cut off")
        observer.on_error(error)
        observer.on_completed()
        observer.on_chunk("late")

        assert await drain(observer) == [("error", error)]
        assert observer.queue.empty()

    @pytest.mark.asyncio
    async def test_events_wait_for_producer(self):
        observer = QueueStreamObserver()

        async def produce():
            await asyncio.sleep(0)
            observer.on_chunk("a")
            await asyncio.sleep(0)
            observer.on_completed()

        producer = asyncio.create_task(produce())
        events = await asyncio.wait_for(drain(observer), timeout=1)
        await producer

        assert events == [("chunk", "a"), ("completed", None)]
