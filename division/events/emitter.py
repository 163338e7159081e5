"""Event emitter - stamps events with a per-session sequence and fans them out.

Sinks are plain callables receiving the stamped event. ``emit`` never
awaits, so the order in which the orchestrator calls it is exactly the
order every sink observes. Once closed (for example after the consumer
disconnected) the emitter silently drops everything.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from types import TracebackType
from uuid import uuid4

from loguru import logger

from division.events.types import HeartbeatEvent, StreamEvent

EventSink = Callable[[StreamEvent], None]


class EventEmitter:
    """
    Sequence-numbered event fan-out for one session.

    Attributes:
        session_id: Id stamped on every event.

    Example:
        >>> emitter = EventEmitter()
        >>> received = []
        >>> emitter.subscribe(received.append)
        >>> emitter.emit(LeaderChunkEvent(text="Hello"))
        >>> received[0].id
        1
    """

    def __init__(self, session_id: str | None = None, sinks: list[EventSink] | None = None):
        self.session_id = session_id or str(uuid4())
        self._sinks: list[EventSink] = list(sinks or [])
        self._sequence = 0
        self._closed = False

    @property
    def sequence(self) -> int:
        """Id of the last emitted event (0 before the first)."""
        return self._sequence

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, sink: EventSink) -> None:
        """Add a sink; it receives events emitted from now on."""
        self._sinks.append(sink)

    def emit(self, event: StreamEvent) -> StreamEvent | None:
        """
        Stamp an event and deliver it to every sink.

        Args:
            event: Event without id/session id.

        Returns:
            The stamped event, or None when the emitter is closed.
        """
        if self._closed:
            return None

        self._sequence += 1
        stamped = event.model_copy(update={"id": self._sequence, "session_id": self.session_id})

        for sink in self._sinks:
            try:
                sink(stamped)
            except Exception as e:
                logger.warning(f"Event sink failed on {stamped.type}: {e}")

        return stamped

    def close(self) -> None:
        """Stop delivering events. Idempotent."""
        if not self._closed:
            logger.debug(f"Emitter for session {self.session_id} closed at event {self._sequence}")
        self._closed = True


class QueueSink:
    """
    Sink that buffers events in an asyncio.Queue for a single consumer.

    Example:
        >>> sink = QueueSink()
        >>> emitter.subscribe(sink)
        >>> async for event in sink:
        ...     print(event.type)
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._finished = False

    def __call__(self, event: StreamEvent) -> None:
        if not self._finished:
            self._queue.put_nowait(event)

    def finish(self) -> None:
        """Signal end of stream; iteration stops after buffered events."""
        if not self._finished:
            self._finished = True
            self._queue.put_nowait(None)

    async def get(self) -> StreamEvent | None:
        """Next event, or None once the stream has finished."""
        return await self._queue.get()

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event


class Heartbeat:
    """
    Session-scoped keep-alive timer.

    Emits a ``heartbeat`` event every ``interval`` seconds while the
    context is open; leaving the context cancels the timer.

    Example:
        >>> async with Heartbeat(emitter, interval=15.0):
        ...     await run_session()
    """

    def __init__(self, emitter: EventEmitter, interval: float = 15.0) -> None:
        self.emitter = emitter
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _beat(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.emitter.emit(HeartbeatEvent())

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._beat())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def __aenter__(self) -> "Heartbeat":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
