"""Core module - orchestrator, session state, configuration and errors."""

from division.core.config import Settings, get_settings
from division.core.errors import (
    DivisionError,
    LeaderCallError,
    LeaderError,
    LeaderParseError,
    ProviderCallError,
    ProviderUnassignedError,
    RoleNotFoundError,
    TaskError,
)
from division.core.orchestrator import Division
from division.core.state import AgentRequest, SessionResult, SessionStatus

__all__ = [
    "AgentRequest",
    "Division",
    "DivisionError",
    "LeaderCallError",
    "LeaderError",
    "LeaderParseError",
    "ProviderCallError",
    "ProviderUnassignedError",
    "RoleNotFoundError",
    "SessionResult",
    "SessionStatus",
    "Settings",
    "TaskError",
    "get_settings",
]
