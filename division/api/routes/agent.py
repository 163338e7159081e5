"""
Agent API Routes.

Run a Division session and return its result, or stream its events.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from division.api.streaming import (
    NDJSON_MEDIA_TYPE,
    SSE_HEADERS,
    SSE_PREAMBLE,
    format_ndjson,
    format_sse,
    stream_session,
)
from division.core.orchestrator import Division
from division.core.state import AgentRequest

router = APIRouter()


def get_division(request: Request) -> Division:
    """Orchestrator stored on the application state."""
    division = getattr(request.app.state, "division", None)
    if division is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return division


@router.post("")
async def run_agent(body: AgentRequest, division: Division = Depends(get_division)) -> JSONResponse:
    """
    Run a session to completion.

    Returns:
        The SessionResult as camelCase JSON.
    """
    result = await division.run(body)
    return JSONResponse(result.to_wire())


@router.post("/stream")
async def stream_agent(
    body: AgentRequest,
    division: Division = Depends(get_division),
) -> StreamingResponse:
    """
    Run a session and stream its events as Server-Sent Events.

    The stream opens with an ``:ok`` comment and ends after ``session_done``.
    """
    return StreamingResponse(
        stream_session(
            division,
            body,
            format_sse,
            preamble=SSE_PREAMBLE,
            cancel_on_disconnect=division.settings.division_cancel_on_disconnect,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/ndjson")
async def stream_agent_ndjson(
    body: AgentRequest,
    division: Division = Depends(get_division),
) -> StreamingResponse:
    """Run a session and stream its events as newline-delimited JSON."""
    return StreamingResponse(
        stream_session(
            division,
            body,
            format_ndjson,
            cancel_on_disconnect=division.settings.division_cancel_on_disconnect,
        ),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache"},
    )
