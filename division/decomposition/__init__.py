"""Task decomposition and scheduling.

- Leader decomposition (request -> sub-tasks)
- Dependency scheduling (sub-tasks -> waves)
- Context enrichment (dependency outputs -> task input)

Execution and aggregation live in ``division.decomposition.executor`` and
``division.decomposition.aggregator``; they depend on session state and
events, so they are imported from their modules directly.
"""

from division.decomposition.context import enrich_input
from division.decomposition.leader import (
    LeaderDecomposer,
    ParseErr,
    ParseOk,
    parse_leader_response,
)
from division.decomposition.models import (
    DependencyOutput,
    SubTask,
    SubTaskResult,
    TaskId,
    TaskStatus,
    Wave,
)
from division.decomposition.scheduler import DependencyScheduler, plan_waves

__all__ = [
    "DependencyOutput",
    "DependencyScheduler",
    "LeaderDecomposer",
    "ParseErr",
    "ParseOk",
    "SubTask",
    "SubTaskResult",
    "TaskId",
    "TaskStatus",
    "Wave",
    "enrich_input",
    "parse_leader_response",
    "plan_waves",
]
