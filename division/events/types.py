"""Stream event definitions for a Division session.

Every progress notification a session produces is one of the models below.
Each carries a ``type`` tag, the session id, a wall-clock timestamp and a
sequence ``id`` that the emitter assigns; payload fields sit flat beside
them and serialize as camelCase.

Ordering guaranteed by the orchestrator:
- ``task_start`` precedes that task's chunks and its ``task_done``/``task_error``
- ``wave_done`` follows every task outcome of its wave
- ``session_done`` is always the last event of a session
"""

import time
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field, TypeAdapter

from division.core.state import SessionStatus
from division.decomposition.models import SubTask, SubTaskResult, TaskStatus, Wave
from division.providers.base import WireModel


class EventType(str, Enum):
    """All event types a session stream can carry."""

    # Session lifecycle
    SESSION_START = "session_start"
    SESSION_DONE = "session_done"

    # Leader
    LEADER_START = "leader_start"
    LEADER_CHUNK = "leader_chunk"
    LEADER_DONE = "leader_done"
    LEADER_ERROR = "leader_error"

    # Waves
    WAVE_START = "wave_start"
    WAVE_DONE = "wave_done"

    # Sub-tasks
    TASK_START = "task_start"
    TASK_CHUNK = "task_chunk"
    TASK_THINKING_CHUNK = "task_thinking_chunk"
    TASK_DONE = "task_done"
    TASK_ERROR = "task_error"

    # Transport keep-alive
    HEARTBEAT = "heartbeat"


class StreamEvent(WireModel):
    """Fields shared by every event."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(default=0, description="Per-session sequence number, set by the emitter")
    type: str
    session_id: str = ""
    timestamp: float = Field(default_factory=time.time)


# =============================================================================
# SESSION / LEADER
# =============================================================================


class SessionStartEvent(StreamEvent):
    type: Literal["session_start"] = "session_start"
    project_id: str
    input: str
    leader: str | None = Field(default=None, description="Leader provider display name")


class LeaderStartEvent(StreamEvent):
    type: Literal["leader_start"] = "leader_start"
    provider: str
    model: str


class LeaderChunkEvent(StreamEvent):
    type: Literal["leader_chunk"] = "leader_chunk"
    text: str


class PlannedTask(WireModel):
    """Task summary carried by ``leader_done``."""

    id: str
    index: int
    role: str
    title: str
    reason: str
    depends_on: list[int]

    @classmethod
    def from_task(cls, task: SubTask) -> "PlannedTask":
        return cls(
            id=task.task_id,
            index=task.index,
            role=task.role,
            title=task.title,
            reason=task.reason,
            depends_on=sorted(task.depends_on),
        )


class LeaderDoneEvent(StreamEvent):
    type: Literal["leader_done"] = "leader_done"
    provider: str
    output: str
    task_count: int
    tasks: list[PlannedTask]
    duration_ms: int = 0


class LeaderErrorEvent(StreamEvent):
    type: Literal["leader_error"] = "leader_error"
    error: str
    raw_text: str | None = None


class SessionDoneEvent(StreamEvent):
    type: Literal["session_done"] = "session_done"
    status: SessionStatus
    total_duration_ms: int
    task_count: int
    final_output: str | None = None
    results: list[SubTaskResult] = Field(default_factory=list)
    error: str | None = None


# =============================================================================
# WAVES
# =============================================================================


class WaveStartEvent(StreamEvent):
    type: Literal["wave_start"] = "wave_start"
    wave_index: int
    task_ids: list[str]
    indices: list[int]
    forced: bool = False

    @classmethod
    def for_wave(cls, wave: Wave) -> "WaveStartEvent":
        return cls(
            wave_index=wave.number,
            task_ids=wave.task_ids,
            indices=list(wave.indices),
            forced=wave.forced,
        )


class WaveDoneEvent(StreamEvent):
    type: Literal["wave_done"] = "wave_done"
    wave_index: int
    task_ids: list[str]
    indices: list[int]
    succeeded: int = 0
    failed: int = 0


# =============================================================================
# SUB-TASKS
# =============================================================================


class TaskStartEvent(StreamEvent):
    type: Literal["task_start"] = "task_start"
    task_id: str
    index: int
    total: int
    role: str
    provider: str
    model: str
    input: str
    wave: int | None = None


class TaskChunkEvent(StreamEvent):
    type: Literal["task_chunk"] = "task_chunk"
    task_id: str
    index: int
    role: str
    text: str
    wave: int | None = None


class TaskThinkingChunkEvent(StreamEvent):
    type: Literal["task_thinking_chunk"] = "task_thinking_chunk"
    task_id: str
    index: int
    role: str
    text: str
    wave: int | None = None


class TaskDoneEvent(StreamEvent):
    type: Literal["task_done"] = "task_done"
    task_id: str
    index: int
    role: str
    provider: str
    model: str
    output: str
    status: TaskStatus = TaskStatus.SUCCESS
    duration_ms: int = 0
    thinking: str | None = None
    citations: list[str] | None = None
    wave: int | None = None

    @classmethod
    def from_result(cls, result: SubTaskResult) -> "TaskDoneEvent":
        return cls(
            task_id=result.task_id,
            index=result.index,
            role=result.role,
            provider=result.provider,
            model=result.model,
            output=result.output,
            status=result.status,
            duration_ms=result.duration_ms,
            thinking=result.thinking,
            citations=result.citations,
            wave=result.wave,
        )


class TaskErrorEvent(StreamEvent):
    type: Literal["task_error"] = "task_error"
    task_id: str
    index: int
    role: str
    error: str
    provider: str | None = None
    duration_ms: int = 0
    wave: int | None = None

    @classmethod
    def from_result(cls, result: SubTaskResult) -> "TaskErrorEvent":
        return cls(
            task_id=result.task_id,
            index=result.index,
            role=result.role,
            error=result.error_msg or "Unknown error",
            provider=result.provider,
            duration_ms=result.duration_ms,
            wave=result.wave,
        )


class HeartbeatEvent(StreamEvent):
    type: Literal["heartbeat"] = "heartbeat"


# =============================================================================
# TAGGED UNION
# =============================================================================

AnyEvent = Annotated[
    Union[
        SessionStartEvent,
        LeaderStartEvent,
        LeaderChunkEvent,
        LeaderDoneEvent,
        LeaderErrorEvent,
        WaveStartEvent,
        WaveDoneEvent,
        TaskStartEvent,
        TaskChunkEvent,
        TaskThinkingChunkEvent,
        TaskDoneEvent,
        TaskErrorEvent,
        SessionDoneEvent,
        HeartbeatEvent,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[AnyEvent] = TypeAdapter(AnyEvent)


def parse_event(data: dict | str | bytes) -> StreamEvent:
    """
    Rebuild a typed event from its wire form.

    Args:
        data: camelCase dict or JSON text.

    Returns:
        The matching event model.
    """
    if isinstance(data, (str, bytes)):
        return _event_adapter.validate_json(data)
    return _event_adapter.validate_python(data)
