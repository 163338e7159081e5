"""Dependency scheduler - executes a task list as a sequence of waves.

Waves are computed lazily: after every wave completes, the remaining tasks
are re-examined and every task whose dependencies have all completed
(successfully or not) forms the next wave. Tasks inside a wave run
concurrently; the scheduler waits for the whole wave before looking again.

When nothing is ready although tasks remain (a cycle, a self-reference, or
a reference to an index that does not exist), every remaining task is
released as one forced wave. This keeps the run live and bounds the number
of waves by the number of tasks.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from loguru import logger

from division.decomposition.models import SubTask, SubTaskResult, Wave

ExecuteFn = Callable[[int, Wave], Awaitable[SubTaskResult]]
WaveCallback = Callable[[Wave], Awaitable[None] | None]
WaveDoneCallback = Callable[[Wave, list[SubTaskResult]], Awaitable[None] | None]


def next_wave(
    tasks: Sequence[SubTask],
    remaining: set[int],
    completed: set[int],
    number: int,
) -> Wave:
    """
    Compute the next wave from the current scheduling state.

    Args:
        tasks: All tasks, indexed by position.
        remaining: Indices not yet executed (must be non-empty).
        completed: Indices already finished.
        number: Number to give the wave.

    Returns:
        The wave; ``forced`` is set when the cycle-breaking fallback fired.
    """
    ready = sorted(i for i in remaining if tasks[i].depends_on <= completed)
    if ready:
        return Wave(number=number, indices=tuple(ready))

    return Wave(number=number, indices=tuple(sorted(remaining)), forced=True)


def plan_waves(tasks: Sequence[SubTask]) -> list[Wave]:
    """
    Predict the waves a run would produce.

    The lazy scheduler treats failed tasks as completed, so the plan does
    not depend on outcomes and matches what ``DependencyScheduler.run``
    executes.

    Args:
        tasks: Tasks indexed by position.

    Returns:
        Waves in execution order.

    Example:
        >>> [w.indices for w in plan_waves(tasks)]
        [(0, 1), (2,)]
    """
    _check_indices(tasks)

    remaining = set(range(len(tasks)))
    completed: set[int] = set()
    waves: list[Wave] = []

    while remaining:
        wave = next_wave(tasks, remaining, completed, len(waves))
        waves.append(wave)
        remaining.difference_update(wave.indices)
        completed.update(wave.indices)

    return waves


def _check_indices(tasks: Sequence[SubTask]) -> None:
    for position, task in enumerate(tasks):
        if task.index != position:
            raise ValueError(f"Task at position {position} has index {task.index}")


async def _call(callback: Callable[..., Awaitable[None] | None] | None, *args: object) -> None:
    if callback is None:
        return
    result = callback(*args)
    if isinstance(result, Awaitable):
        await result


class DependencyScheduler:
    """
    Run tasks wave by wave, concurrently within each wave.

    Attributes:
        max_concurrent: Upper bound on simultaneously executing tasks.
        waves: Waves executed by the most recent run.

    Example:
        >>> scheduler = DependencyScheduler(max_concurrent=8)
        >>> results = await scheduler.run(tasks, executor.execute)
        >>> [w.indices for w in scheduler.waves]
        [(0, 1), (2,)]
    """

    def __init__(self, max_concurrent: int | None = None) -> None:
        self.max_concurrent = max_concurrent
        self.waves: list[Wave] = []

    async def run(
        self,
        tasks: Sequence[SubTask],
        execute: ExecuteFn,
        on_wave_start: WaveCallback | None = None,
        on_wave_done: WaveDoneCallback | None = None,
    ) -> list[SubTaskResult]:
        """
        Execute every task exactly once, respecting dependencies.

        Args:
            tasks: Tasks indexed by position.
            execute: Runs one task; receives its index and wave.
            on_wave_start: Called before a wave's tasks are launched.
            on_wave_done: Called with the wave's results once every task in it finished.

        Returns:
            One result per task, in original list order.
        """
        _check_indices(tasks)

        self.waves = []
        results: list[SubTaskResult | None] = [None] * len(tasks)
        remaining = set(range(len(tasks)))
        completed: set[int] = set()
        semaphore = asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None

        logger.info(f"Scheduling {len(tasks)} tasks")

        while remaining:
            wave = next_wave(tasks, remaining, completed, len(self.waves))
            self.waves.append(wave)
            remaining.difference_update(wave.indices)

            if wave.forced:
                logger.warning(
                    f"Wave {wave.number}: unsatisfiable dependencies, "
                    f"releasing remaining tasks {list(wave.indices)}"
                )

            logger.info(f"Starting wave {wave.number} with {len(wave)} tasks: {wave.task_ids}")
            await _call(on_wave_start, wave)

            outcomes = await asyncio.gather(
                *(self._execute_one(execute, index, wave, semaphore) for index in wave.indices),
                return_exceptions=True,
            )

            for index, outcome in zip(wave.indices, outcomes, strict=True):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    logger.error(f"Task {tasks[index].task_id} raised: {outcome!r}")
                    outcome = SubTaskResult.failed(tasks[index], str(outcome), wave=wave.number)
                if results[index] is not None:
                    raise RuntimeError(f"Task {index} produced more than one result")
                results[index] = outcome

            completed.update(wave.indices)

            wave_results = [results[i] for i in wave.indices]
            failed = sum(1 for r in wave_results if not r.is_success)
            logger.info(
                f"Wave {wave.number} complete: {len(wave) - failed} succeeded, {failed} failed"
            )
            await _call(on_wave_done, wave, wave_results)

        logger.info(f"All {len(tasks)} tasks finished in {len(self.waves)} waves")
        return [r for r in results if r is not None]

    @staticmethod
    async def _execute_one(
        execute: ExecuteFn,
        index: int,
        wave: Wave,
        semaphore: asyncio.Semaphore | None,
    ) -> SubTaskResult:
        if semaphore is None:
            return await execute(index, wave)
        async with semaphore:
            return await execute(index, wave)
