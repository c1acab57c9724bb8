# File: wpstudio/core/streaming.py
# Purpose: Streaming observer contract and an asyncio queue adapter for SSE transports
import asyncio
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from wpstudio.core.exceptions import ExternalServiceError


@runtime_checkable
class StreamObserver(Protocol):
    """
    Receives incremental output of a streaming call.

    Zero or more on_chunk calls are followed by exactly one terminal
    callback: on_completed or on_error. One observer serves one stream.
    """

    def on_chunk(self, chunk: str) -> None:
        ...

    def on_completed(self) -> None:
        ...

    def on_error(self, error: ExternalServiceError) -> None:
        ...


class QueueStreamObserver:
    """
    Observer that pushes every callback onto an asyncio.Queue.

    Lets an HTTP handler drain events while the SDK call runs as a separate
    task, e.g. to render them as server-sent events.
    """

    CHUNK = "chunk"
    COMPLETED = "completed"
    ERROR = "error"

    def __init__(self, maxsize: int = 0):
        self.queue: asyncio.Queue[tuple[str, Optional[object]]] = asyncio.Queue(maxsize=maxsize)
        self._finished = False

    def on_chunk(self, chunk: str) -> None:
        if self._finished:
            return
        self.queue.put_nowait((self.CHUNK, chunk))

    def on_completed(self) -> None:
        self._terminate((self.COMPLETED, None))

    def on_error(self, error: ExternalServiceError) -> None:
        self._terminate((self.ERROR, error))

    @property
    def finished(self) -> bool:
        return self._finished

    def _terminate(self, event: tuple[str, Optional[object]]) -> None:
        # Only the first terminal event counts
        if self._finished:
            return
        self._finished = True
        self.queue.put_nowait(event)

    async def events(self) -> AsyncIterator[tuple[str, Optional[object]]]:
        """
        Yield (event_type, payload) tuples until a terminal event arrives.

        Yields:
            ("chunk", str), then ("completed", None) or ("error", error)
        """
        while True:
            event_type, payload = await self.queue.get()
            yield event_type, payload
            if event_type in (self.COMPLETED, self.ERROR):
                return
