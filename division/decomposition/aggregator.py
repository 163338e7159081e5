"""Session aggregator - folds sub-task results into a session outcome."""

from collections.abc import Sequence

from division.core.state import SessionResult, SessionStatus
from division.decomposition.models import SubTaskResult


def aggregate_status(results: Sequence[SubTaskResult]) -> SessionStatus:
    """
    Success if all succeeded, error if all failed, else partial.

    An empty result list is an error rather than a vacuous success: no
    sub-task ran, so the session produced no output to report.
    """
    if not results:
        return SessionStatus.ERROR

    succeeded = sum(1 for r in results if r.is_success)
    if succeeded == len(results):
        return SessionStatus.SUCCESS
    if succeeded == 0:
        return SessionStatus.ERROR
    return SessionStatus.PARTIAL


def final_output(results: Sequence[SubTaskResult]) -> str | None:
    """Output of the last successful result in list order."""
    for result in reversed(results):
        if result.is_success:
            return result.output
    return None


def aggregate(
    results: Sequence[SubTaskResult],
    session_id: str,
    user_input: str,
    total_duration_ms: int,
    leader_provider: str | None = None,
    leader_model: str | None = None,
) -> SessionResult:
    """
    Build the session result.

    Args:
        results: One result per sub-task, in original list order.
        session_id: Session id.
        user_input: The original request.
        total_duration_ms: Wall-clock time from decomposition start to the
            last task completion.
        leader_provider: Leader display name.
        leader_model: Leader model id.

    Returns:
        SessionResult with status and final output filled in.

    Example:
        >>> session = aggregate(results, session_id, "Plan a trip", 5400)
        >>> session.status
        <SessionStatus.PARTIAL: 'partial'>
    """
    return SessionResult(
        session_id=session_id,
        input=user_input,
        leader_provider=leader_provider,
        leader_model=leader_model,
        tasks=list(results),
        final_output=final_output(results),
        total_duration_ms=total_duration_ms,
        status=aggregate_status(results),
    )
