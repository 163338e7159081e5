"""Unit tests for event models, the emitter, stream sinks and the heartbeat."""

import asyncio
import json

import pytest

from division.api.streaming import format_ndjson, format_sse
from division.core.state import SessionStatus
from division.decomposition.models import SubTaskResult, TaskStatus, Wave
from division.events.emitter import EventEmitter, Heartbeat, QueueSink
from division.events.types import (
    EventType,
    HeartbeatEvent,
    LeaderChunkEvent,
    PlannedTask,
    SessionDoneEvent,
    TaskDoneEvent,
    TaskErrorEvent,
    WaveStartEvent,
    parse_event,
)
from helpers import make_task

# =============================================================================
# EVENT MODELS
# =============================================================================


class TestEventModels:
    """Tests for event payloads and their wire form."""

    def test_type_tag_defaults(self) -> None:
        assert LeaderChunkEvent(text="hi").type == EventType.LEADER_CHUNK
        assert HeartbeatEvent().type == "heartbeat"

    def test_wire_is_camel_case(self) -> None:
        wire = WaveStartEvent.for_wave(Wave(number=2, indices=(3, 4), forced=True)).to_wire()

        assert wire["type"] == "wave_start"
        assert wire["waveIndex"] == 2
        assert wire["taskIds"] == ["task-3", "task-4"]
        assert wire["forced"] is True
        assert "sessionId" in wire

    def test_task_done_from_result(self) -> None:
        result = SubTaskResult.from_task(
            make_task(1, role="writing"),
            provider="Claude",
            model="claude-x",
            output="text",
            status=TaskStatus.SUCCESS,
            duration_ms=12,
            wave=1,
        )
        event = TaskDoneEvent.from_result(result)

        assert event.task_id == "task-1"
        assert event.output == "text"
        assert event.duration_ms == 12
        assert event.wave == 1

    def test_task_error_from_result(self) -> None:
        result = SubTaskResult.failed(make_task(0), "boom", provider="Sonar", wave=0)
        wire = TaskErrorEvent.from_result(result).to_wire()

        assert wire["taskId"] == "task-0"
        assert wire["error"] == "boom"
        assert wire["provider"] == "Sonar"

    def test_planned_task(self) -> None:
        planned = PlannedTask.from_task(make_task(2, role="review", depends_on={1, 0}))

        assert planned.id == "task-2"
        assert planned.depends_on == [0, 1]

    def test_session_done_wire(self) -> None:
        event = SessionDoneEvent(
            status=SessionStatus.PARTIAL,
            total_duration_ms=100,
            task_count=1,
            final_output="answer",
        )
        wire = event.to_wire()

        assert wire["status"] == "partial"
        assert wire["finalOutput"] == "answer"
        assert wire["totalDurationMs"] == 100

    def test_parse_event_round_trips_type(self) -> None:
        original = WaveStartEvent(wave_index=0, task_ids=["task-0"], indices=[0])
        parsed = parse_event(json.dumps(original.to_wire()))

        assert isinstance(parsed, WaveStartEvent)
        assert parsed == original

    def test_parse_event_from_dict(self) -> None:
        parsed = parse_event({"type": "leader_chunk", "text": "Hel", "id": 4})

        assert isinstance(parsed, LeaderChunkEvent)
        assert parsed.id == 4

    def test_parse_event_unknown_type(self) -> None:
        with pytest.raises(ValueError):
            parse_event({"type": "mystery"})


# =============================================================================
# EMITTER
# =============================================================================


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_sequence_starts_at_one_and_increments(self) -> None:
        emitter = EventEmitter(session_id="s1")
        received = []
        emitter.subscribe(received.append)

        emitter.emit(LeaderChunkEvent(text="a"))
        emitter.emit(LeaderChunkEvent(text="b"))

        assert [e.id for e in received] == [1, 2]
        assert all(e.session_id == "s1" for e in received)
        assert emitter.sequence == 2

    def test_emit_returns_stamped_copy(self) -> None:
        event = LeaderChunkEvent(text="a")
        stamped = EventEmitter().emit(event)

        assert stamped.id == 1
        assert event.id == 0

    def test_generates_session_id(self) -> None:
        assert EventEmitter().session_id != EventEmitter().session_id

    def test_every_sink_sees_same_order(self) -> None:
        first, second = [], []
        emitter = EventEmitter(sinks=[first.append, second.append])

        for text in "abc":
            emitter.emit(LeaderChunkEvent(text=text))

        assert [e.text for e in first] == ["a", "b", "c"]
        assert first == second

    def test_failing_sink_does_not_stop_delivery(self) -> None:
        received = []

        def broken(event) -> None:
            raise RuntimeError("sink down")

        emitter = EventEmitter(sinks=[broken, received.append])
        emitter.emit(LeaderChunkEvent(text="a"))

        assert len(received) == 1

    def test_closed_emitter_drops_events(self) -> None:
        received = []
        emitter = EventEmitter(sinks=[received.append])

        emitter.close()
        emitter.close()

        assert emitter.closed
        assert emitter.emit(LeaderChunkEvent(text="a")) is None
        assert received == []
        assert emitter.sequence == 0


class TestQueueSink:
    """Tests for QueueSink."""

    @pytest.mark.asyncio
    async def test_iterates_until_finished(self) -> None:
        sink = QueueSink()
        emitter = EventEmitter(sinks=[sink])
        emitter.emit(LeaderChunkEvent(text="a"))
        emitter.emit(LeaderChunkEvent(text="b"))
        sink.finish()
        emitter.emit(LeaderChunkEvent(text="late"))

        received = [event.text async for event in sink]

        assert received == ["a", "b"]

    @pytest.mark.asyncio
    async def test_get_returns_none_after_finish(self) -> None:
        sink = QueueSink()
        sink.finish()
        sink.finish()

        assert await sink.get() is None


# =============================================================================
# FRAMING
# =============================================================================


class TestFraming:
    """Tests for SSE and NDJSON framing."""

    def test_sse_frame(self) -> None:
        stamped = EventEmitter(session_id="s1").emit(LeaderChunkEvent(text="Hi"))
        frame = format_sse(stamped)

        lines = frame.split("\n")
        assert lines[0] == "id: 1"
        assert lines[1] == "event: leader_chunk"
        assert lines[2].startswith("data: ")
        assert frame.endswith("\n\n")
        payload = json.loads(lines[2][len("data: "):])
        assert payload["text"] == "Hi"
        assert payload["sessionId"] == "s1"

    def test_ndjson_line(self) -> None:
        stamped = EventEmitter().emit(LeaderChunkEvent(text="line\nbreak"))
        line = format_ndjson(stamped)

        assert line.endswith("\n")
        assert line.count("\n") == 1
        assert json.loads(line)["text"] == "line\nbreak"


# =============================================================================
# HEARTBEAT
# =============================================================================


class TestHeartbeat:
    """Tests for Heartbeat."""

    @pytest.mark.asyncio
    async def test_emits_on_interval(self) -> None:
        received = []
        emitter = EventEmitter(sinks=[received.append])

        async with Heartbeat(emitter, interval=0.02) as heartbeat:
            assert heartbeat.running
            await asyncio.sleep(0.09)

        assert len(received) >= 2
        assert all(e.type == EventType.HEARTBEAT for e in received)
        assert not heartbeat.running

    @pytest.mark.asyncio
    async def test_nothing_after_stop(self) -> None:
        received = []
        emitter = EventEmitter(sinks=[received.append])
        heartbeat = Heartbeat(emitter, interval=0.01)

        heartbeat.start()
        await asyncio.sleep(0.035)
        await heartbeat.stop()
        count = len(received)
        await asyncio.sleep(0.03)

        assert len(received) == count

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        heartbeat = Heartbeat(EventEmitter(), interval=1.0)
        await heartbeat.stop()
        assert not heartbeat.running
