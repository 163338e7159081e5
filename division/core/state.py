"""Request and session types for a Division run."""

from enum import Enum
from uuid import uuid4

from pydantic import Field, field_validator

from division.decomposition.models import SubTaskResult
from division.providers.base import ChatMessage, WireModel

__all__ = ["AgentRequest", "ChatMessage", "SessionResult", "SessionStatus"]


class SessionStatus(str, Enum):
    """Aggregated outcome of a session."""

    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class AgentRequest(WireModel):
    """One user request to coordinate.

    Example:
        >>> AgentRequest.model_validate({"projectId": "demo-project-001",
        ...                              "input": "Compare three CSS frameworks"})
    """

    project_id: str = Field(..., min_length=1)
    input: str = Field(..., description="Natural-language request")
    api_keys: dict[str, str] = Field(
        default_factory=dict,
        description="Request-supplied provider keys, by provider name, type or alias",
    )
    overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Role slug -> provider name for this request",
    )
    history: list[ChatMessage] = Field(
        default_factory=list,
        description="Prior conversation turns handed to the leader",
    )

    @field_validator("input")
    @classmethod
    def _require_input(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("input must not be empty")
        return value


class SessionResult(WireModel):
    """Everything one orchestration run produced."""

    session_id: str = Field(default_factory=lambda: str(uuid4()))
    input: str
    leader_provider: str | None = None
    leader_model: str | None = None
    tasks: list[SubTaskResult] = Field(default_factory=list)
    final_output: str | None = None
    total_duration_ms: int = 0
    status: SessionStatus
    error: str | None = None

    @property
    def task_count(self) -> int:
        return len(self.tasks)
