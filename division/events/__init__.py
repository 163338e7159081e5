"""Session event stream: event models, emitter, heartbeat and task-log recorder."""

from division.events.emitter import EventEmitter, Heartbeat, QueueSink
from division.events.task_log import TaskLogRecorder
from division.events.types import EventType, StreamEvent, parse_event

__all__ = [
    "EventEmitter",
    "EventType",
    "Heartbeat",
    "QueueSink",
    "StreamEvent",
    "TaskLogRecorder",
    "parse_event",
]
