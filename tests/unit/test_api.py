"""
Unit tests for the Division HTTP API.

Tests the JSON, SSE and NDJSON endpoints against the offline generator.
"""

import json

import pytest
from fastapi.testclient import TestClient

from division import __version__
from division.api.main import create_app
from division.core.orchestrator import Division
from division.events.types import parse_event
from division.providers.echo import EchoGenerator

# =============================================================================
# TEST FIXTURES
# =============================================================================


@pytest.fixture
def division(settings, catalog) -> Division:
    return Division(settings=settings, catalog=catalog, generator=EchoGenerator())


@pytest.fixture
def client(division):
    """Create a FastAPI test client."""
    with TestClient(create_app(division=division)) as test_client:
        yield test_client


@pytest.fixture
def body(project_id) -> dict:
    return {"projectId": project_id, "input": "Compare three CSS frameworks"}


def sse_frames(text: str) -> list[dict[str, str]]:
    """Split an SSE body into frames of field -> value, skipping comments."""
    frames = []
    for block in text.split("\n\n"):
        fields = {}
        for line in block.split("\n"):
            if not line or line.startswith(":"):
                continue
            name, _, value = line.partition(": ")
            fields[name] = value
        if fields:
            frames.append(fields)
    return frames


# =============================================================================
# TEST HEALTH ENDPOINT
# =============================================================================


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__}


# =============================================================================
# TEST AGENT ENDPOINTS
# =============================================================================


class TestRunEndpoint:
    """Tests for POST /api/agent."""

    def test_returns_session_result(self, client, body) -> None:
        response = client.post("/api/agent", json=body)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert len(data["tasks"]) == 5
        assert data["finalOutput"].startswith("[GPT-4.1 (OpenAI)]")
        assert data["leaderProvider"] == "Claude Sonnet 4.5 (Anthropic)"

    def test_empty_input_rejected(self, client, project_id) -> None:
        response = client.post("/api/agent", json={"projectId": project_id, "input": "  "})
        assert response.status_code == 422

    def test_missing_project_rejected(self, client) -> None:
        response = client.post("/api/agent", json={"input": "hello"})
        assert response.status_code == 422

    def test_unknown_project_is_error_status(self, client) -> None:
        response = client.post("/api/agent", json={"projectId": "nope", "input": "hello"})

        assert response.status_code == 200
        assert response.json()["status"] == "error"

    def test_not_initialized(self) -> None:
        client = TestClient(create_app())
        response = client.post("/api/agent", json={"projectId": "p", "input": "hello"})

        assert response.status_code == 503


class TestStreamEndpoint:
    """Tests for POST /api/agent/stream."""

    def test_sse_stream(self, client, body) -> None:
        response = client.post("/api/agent/stream", json=body)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.text.startswith(":ok\n\n")

        frames = sse_frames(response.text)
        types = [f["event"] for f in frames]
        assert types[0] == "session_start"
        assert types[-1] == "session_done"
        assert "wave_start" in types
        assert [int(f["id"]) for f in frames] == list(range(1, len(frames) + 1))

        done = json.loads(frames[-1]["data"])
        assert done["status"] == "success"
        assert done["taskCount"] == 5

    def test_sse_data_parses_as_events(self, client, body) -> None:
        response = client.post("/api/agent/stream", json=body)
        frames = sse_frames(response.text)

        for frame in frames:
            event = parse_event(frame["data"])
            assert event.type == frame["event"]

    def test_sse_leader_failure_still_terminates(self, client) -> None:
        response = client.post("/api/agent/stream", json={"projectId": "nope", "input": "hello"})
        types = [f["event"] for f in sse_frames(response.text)]

        assert types == ["session_start", "leader_error", "session_done"]


class TestNdjsonEndpoint:
    """Tests for POST /api/agent/ndjson."""

    def test_ndjson_stream(self, client, body) -> None:
        response = client.post("/api/agent/ndjson", json=body)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")

        events = [json.loads(line) for line in response.text.splitlines() if line]
        assert events[0]["type"] == "session_start"
        assert events[-1]["type"] == "session_done"
        assert len({e["sessionId"] for e in events}) == 1
