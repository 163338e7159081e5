"""
Division - multi-AI coordinator.

A leader model decomposes one request into role-tagged sub-tasks that run
in dependency waves on the providers bound to their roles.
"""

__version__ = "0.1.0"

from division.core.orchestrator import Division
from division.core.state import AgentRequest, SessionResult, SessionStatus

__all__ = ["AgentRequest", "Division", "SessionResult", "SessionStatus", "__version__"]
