"""Integration tests for session streams whose consumer goes away early."""

import asyncio
import json

import pytest

from division.api.streaming import SSE_PREAMBLE, format_ndjson, format_sse, stream_session
from division.core.orchestrator import Division
from division.core.state import AgentRequest
from helpers import ScriptedGenerator, leader_json

pytestmark = pytest.mark.integration

PLAN = leader_json(
    [
        {"role": "search", "input": "Find facts", "dependsOn": []},
        {"role": "writing", "input": "Write it", "dependsOn": [0]},
    ]
)


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator(leader_output=PLAN, delays={"search": 0.2})


@pytest.fixture
def division(settings, catalog, generator) -> Division:
    return Division(settings=settings, catalog=catalog, generator=generator)


async def read_until(stream, event_type: str) -> list[dict]:
    """Consume NDJSON lines until one of the given type arrives."""
    events = []
    async for line in stream:
        events.append(json.loads(line))
        if events[-1]["type"] == event_type:
            break
    return events


class TestStreamSession:
    """Tests for stream_session."""

    @pytest.mark.asyncio
    async def test_complete_stream(self, division, project_id) -> None:
        request = AgentRequest(project_id=project_id, input="Build it")
        frames = [
            frame
            async for frame in stream_session(division, request, format_sse, preamble=SSE_PREAMBLE)
        ]

        assert frames[0] == SSE_PREAMBLE
        assert frames[1].startswith("id: 1\nevent: session_start\n")
        assert "event: session_done" in frames[-1]

    @pytest.mark.asyncio
    async def test_disconnect_cancels_run(self, division, generator, catalog, project_id) -> None:
        request = AgentRequest(project_id=project_id, input="Build it")
        stream = stream_session(division, request, format_ndjson, cancel_on_disconnect=True)

        events = await read_until(stream, "task_start")
        await stream.aclose()
        await asyncio.sleep(0.3)

        assert events[-1]["taskId"] == "task-0"
        assert ("end", "search") in generator.timeline
        assert generator.requests_for("writing") == []
        assert catalog.task_logs == []

    @pytest.mark.asyncio
    async def test_disconnect_lets_run_finish(self, division, generator, catalog, project_id) -> None:
        request = AgentRequest(project_id=project_id, input="Build it")
        stream = stream_session(division, request, format_ndjson, cancel_on_disconnect=False)

        await read_until(stream, "task_start")
        await stream.aclose()
        await asyncio.sleep(0.4)

        assert len(generator.requests_for("writing")) == 1
        assert sorted(e.role_id for e in catalog.task_logs) == ["role-search", "role-writing"]
