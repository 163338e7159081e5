"""Pydantic models for task decomposition and execution.

This module defines the data structures that flow through a Division
session: the leader's sub-tasks, the waves the scheduler builds from them,
and the write-once results each sub-task produces.
"""

from enum import Enum
from typing import NewType

from pydantic import ConfigDict, Field, computed_field, field_serializer

from division.providers.base import WireModel

# Stable task identity, assigned once at decomposition time.
TaskId = NewType("TaskId", int)


def task_id_for(index: int) -> str:
    """Wire identifier for a task index (``task-<index>``)."""
    return f"task-{index}"


# =============================================================================
# ENUMS
# =============================================================================


class TaskStatus(str, Enum):
    """Outcome of a sub-task."""

    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# SUB-TASKS
# =============================================================================


class SubTask(WireModel):
    """One unit of work produced by the leader.

    Immutable after decomposition. ``index`` is its position in the leader's
    list and doubles as its stable id.

    Example:
        >>> task = SubTask(index=2, role="coding", input="Write the parser",
        ...                depends_on=frozenset({0, 1}))
        >>> task.task_id
        'task-2'
    """

    model_config = ConfigDict(frozen=True)

    index: TaskId = Field(..., ge=0, description="Position in the leader's list")
    role: str = Field(..., description="Role slug, e.g. 'search' or 'coding'")
    input: str = Field(..., description="Instruction sent to the role's provider")
    reason: str = Field(default="", description="Why the leader asked for this task")
    title: str = Field(default="", description="Short label for display")
    depends_on: frozenset[int] = Field(
        default_factory=frozenset,
        description="Indices of tasks that must finish first",
    )

    @computed_field
    @property
    def task_id(self) -> str:
        return task_id_for(self.index)

    @field_serializer("depends_on")
    def _serialize_depends_on(self, value: frozenset[int]) -> list[int]:
        return sorted(value)


class SubTaskResult(WireModel):
    """Write-once record of how a sub-task finished."""

    model_config = ConfigDict(frozen=True)

    index: TaskId = Field(..., ge=0)
    role: str
    input: str
    reason: str = ""
    title: str = ""
    depends_on: frozenset[int] = Field(default_factory=frozenset)

    provider: str = Field(..., description="Provider display name")
    model: str = Field(..., description="Provider model id")
    output: str = ""
    status: TaskStatus
    error_msg: str | None = None
    duration_ms: int = Field(default=0, ge=0)
    thinking: str | None = None
    citations: list[str] | None = None
    wave: int | None = Field(default=None, description="Wave the task ran in")

    @computed_field
    @property
    def task_id(self) -> str:
        return task_id_for(self.index)

    @field_serializer("depends_on")
    def _serialize_depends_on(self, value: frozenset[int]) -> list[int]:
        return sorted(value)

    @property
    def is_success(self) -> bool:
        return self.status == TaskStatus.SUCCESS

    @classmethod
    def from_task(cls, task: SubTask, **fields: object) -> "SubTaskResult":
        """Build a result carrying the sub-task's own fields."""
        return cls(
            index=task.index,
            role=task.role,
            input=task.input,
            reason=task.reason,
            title=task.title,
            depends_on=task.depends_on,
            **fields,
        )

    @classmethod
    def failed(
        cls,
        task: SubTask,
        error: str,
        provider: str = "unknown",
        model: str = "unknown",
        duration_ms: int = 0,
        wave: int | None = None,
    ) -> "SubTaskResult":
        """Build an error result for a task."""
        return cls.from_task(
            task,
            provider=provider,
            model=model,
            output="",
            status=TaskStatus.ERROR,
            error_msg=error,
            duration_ms=duration_ms,
            wave=wave,
        )


# =============================================================================
# SCHEDULING
# =============================================================================


class Wave(WireModel):
    """A group of tasks whose dependencies were satisfied together.

    ``forced`` marks a wave produced by the cycle-breaking fallback: its
    members still had unmet dependencies when they were released.
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=0)
    indices: tuple[int, ...]
    forced: bool = False

    @property
    def task_ids(self) -> list[str]:
        return [task_id_for(i) for i in self.indices]

    def __contains__(self, index: object) -> bool:
        return index in self.indices

    def __len__(self) -> int:
        return len(self.indices)


class DependencyOutput(WireModel):
    """Text a finished task makes available to its dependents."""

    model_config = ConfigDict(frozen=True)

    index: int
    role_name: str
    provider_name: str
    output: str
