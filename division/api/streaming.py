"""Wire framing for session event streams.

Both transports carry the same camelCase event payloads: Server-Sent
Events frame each one as ``id:``/``event:``/``data:`` lines, NDJSON puts
one JSON object per line.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Callable

from loguru import logger

from division.core.orchestrator import Division
from division.core.state import AgentRequest, SessionResult
from division.events.emitter import EventEmitter, QueueSink
from division.events.types import StreamEvent

SSE_PREAMBLE = ":ok\n\n"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
NDJSON_MEDIA_TYPE = "application/x-ndjson"

EventFormatter = Callable[[StreamEvent], str]

# Runs left to finish after their consumer went away.
_detached_runs: set[asyncio.Task[SessionResult]] = set()


def _payload(event: StreamEvent) -> str:
    return json.dumps(event.to_wire(), ensure_ascii=False, separators=(",", ":"))


def format_sse(event: StreamEvent) -> str:
    """Frame one event as a Server-Sent Event."""
    return f"id: {event.id}\nevent: {event.type}\ndata: {_payload(event)}\n\n"


def format_ndjson(event: StreamEvent) -> str:
    """Frame one event as a JSON line."""
    return f"{_payload(event)}\n"


def _log_outcome(task: asyncio.Task[SessionResult]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Session run crashed: {error!r}")


async def stream_session(
    division: Division,
    request: AgentRequest,
    formatter: EventFormatter,
    preamble: str = "",
    cancel_on_disconnect: bool = True,
) -> AsyncIterator[str]:
    """
    Run a session in the background and yield its framed events.

    If the consumer stops iterating before the session finished, the
    emitter is closed and, when ``cancel_on_disconnect`` is set, the run is
    cancelled; otherwise it runs to completion unobserved.

    Args:
        division: Orchestrator to run.
        request: The request.
        formatter: Event framing (format_sse or format_ndjson).
        preamble: Text sent before the first event.
        cancel_on_disconnect: Cancel the run when the consumer goes away.

    Yields:
        Framed events, ending with ``session_done``.
    """
    emitter = EventEmitter()
    sink = QueueSink()
    emitter.subscribe(sink)

    run = asyncio.create_task(division.run(request, emitter))
    run.add_done_callback(lambda _: sink.finish())
    run.add_done_callback(_log_outcome)

    try:
        if preamble:
            yield preamble
        async for event in sink:
            yield formatter(event)
    finally:
        if not run.done():
            emitter.close()
            if cancel_on_disconnect:
                logger.info(f"Consumer of session {emitter.session_id} disconnected, cancelling run")
                run.cancel()
            else:
                logger.info(
                    f"Consumer of session {emitter.session_id} disconnected, "
                    f"letting run finish"
                )
                _detached_runs.add(run)
                run.add_done_callback(_detached_runs.discard)
