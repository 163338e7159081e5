"""Unit tests for the session aggregator."""

from division.core.state import SessionStatus
from division.decomposition.aggregator import aggregate, aggregate_status, final_output
from division.decomposition.models import SubTaskResult, TaskStatus
from helpers import make_task


def ok(index: int, output: str = "") -> SubTaskResult:
    return SubTaskResult.from_task(
        make_task(index),
        provider="p",
        model="m",
        output=output or f"out {index}",
        status=TaskStatus.SUCCESS,
    )


def err(index: int) -> SubTaskResult:
    return SubTaskResult.failed(make_task(index), "boom")


class TestAggregateStatus:
    """Tests for aggregate_status."""

    def test_all_success(self) -> None:
        assert aggregate_status([ok(0), ok(1)]) == SessionStatus.SUCCESS

    def test_all_error(self) -> None:
        assert aggregate_status([err(0), err(1)]) == SessionStatus.ERROR

    def test_mixed_is_partial(self) -> None:
        assert aggregate_status([ok(0), err(1)]) == SessionStatus.PARTIAL

    def test_empty_is_error(self) -> None:
        assert aggregate_status([]) == SessionStatus.ERROR


class TestFinalOutput:
    """Tests for final_output."""

    def test_last_success_in_list_order(self) -> None:
        assert final_output([ok(0, "a"), ok(1, "b"), err(2)]) == "b"

    def test_none_when_all_failed(self) -> None:
        assert final_output([err(0)]) is None


class TestAggregate:
    """Tests for aggregate."""

    def test_builds_session_result(self) -> None:
        results = [ok(0, "facts"), err(1), ok(2, "answer")]
        session = aggregate(
            results,
            session_id="s1",
            user_input="Plan a trip",
            total_duration_ms=120,
            leader_provider="Claude",
            leader_model="claude-x",
        )

        assert session.session_id == "s1"
        assert session.status == SessionStatus.PARTIAL
        assert session.final_output == "answer"
        assert session.task_count == 3
        assert session.tasks == results
        assert session.total_duration_ms == 120
        assert session.leader_provider == "Claude"
        assert session.error is None
