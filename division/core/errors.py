"""Exception taxonomy for a Division orchestration run.

Leader-stage errors are fatal to the session. Task-stage errors are local
to one sub-task: the executor records them as an error result and the run
continues.
"""


class DivisionError(Exception):
    """Base exception for Division errors."""

    pass


# =============================================================================
# LEADER STAGE (fatal)
# =============================================================================


class LeaderError(DivisionError):
    """The leader could not produce a task decomposition."""

    pass


class LeaderCallError(LeaderError):
    """Provider or network failure during the decomposition call."""

    pass


class LeaderParseError(LeaderError):
    """The leader answered, but not with a usable task list.

    Attributes:
        reason: Why the response was rejected.
        raw_text: The untouched leader output, kept for diagnosis.
    """

    def __init__(self, reason: str, raw_text: str) -> None:
        super().__init__(f"Failed to parse leader response: {reason}")
        self.reason = reason
        self.raw_text = raw_text


# =============================================================================
# TASK STAGE (local to one sub-task)
# =============================================================================


class TaskError(DivisionError):
    """A single sub-task failed; siblings keep running."""

    pass


class RoleNotFoundError(TaskError):
    """The sub-task names a role slug the catalog does not know."""

    def __init__(self, role: str) -> None:
        super().__init__(f"Role not found: {role}")
        self.role = role


class ProviderUnassignedError(TaskError):
    """Neither an override nor a project binding resolves a provider."""

    def __init__(self, role: str) -> None:
        super().__init__(f'No provider assigned to role "{role}"')
        self.role = role


class ProviderCallError(TaskError):
    """Network or vendor error while a sub-task was being generated."""

    pass
