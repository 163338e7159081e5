"""Main Division orchestrator - drives one session from request to result.

A session runs the leader decomposition, schedules the resulting sub-tasks
in waves, aggregates their results and reports every step through an
EventEmitter. Leader-stage failures end the session early with status
``error``; sub-task failures only degrade it.
"""

import time

from loguru import logger

from division.core.config import Settings, get_settings
from division.core.errors import LeaderError, LeaderParseError
from division.core.state import AgentRequest, SessionResult, SessionStatus
from division.decomposition.aggregator import aggregate
from division.decomposition.executor import TaskExecutor
from division.decomposition.leader import LeaderDecomposer
from division.decomposition.models import SubTaskResult, Wave
from division.decomposition.scheduler import DependencyScheduler
from division.events.emitter import EventEmitter, Heartbeat
from division.events.task_log import TaskLogRecorder
from division.events.types import (
    LeaderChunkEvent,
    LeaderDoneEvent,
    LeaderErrorEvent,
    LeaderStartEvent,
    PlannedTask,
    SessionDoneEvent,
    SessionStartEvent,
    WaveDoneEvent,
    WaveStartEvent,
)
from division.knowledge.catalog import Catalog, TaskLogStore, load_catalog
from division.providers.base import ProviderDescriptor, TextGenerator, load_generator
from division.providers.resolver import RoleProviderResolver


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class Division:
    """
    Multi-AI coordinator.

    A leader model splits the request into role-tagged sub-tasks; the
    sub-tasks run wave by wave on the providers bound to their roles, each
    receiving the outputs of the tasks it depends on.

    Example:
        >>> division = Division()
        >>> result = await division.run(
        ...     AgentRequest(project_id="demo-project-001", input="Compare three CSS frameworks")
        ... )
        >>> result.status
        <SessionStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        settings: Settings | None = None,
        catalog: Catalog | None = None,
        generator: TextGenerator | None = None,
        task_log: TaskLogStore | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Optional settings override. Uses default if not provided.
            catalog: Role/provider catalog. Loaded from settings if not provided.
            generator: Text generation capability. Loaded from settings if not provided.
            task_log: Store for completed sub-tasks. Defaults to the catalog
                when it also implements TaskLogStore.
        """
        self.settings = settings or get_settings()
        self.catalog = catalog or load_catalog(self.settings.division_catalog_path)
        self.generator = generator or load_generator(self.settings.division_generator)

        if task_log is None and isinstance(self.catalog, TaskLogStore):
            task_log = self.catalog
        self.task_log = task_log

        self.resolver = RoleProviderResolver(self.catalog)
        self.decomposer = LeaderDecomposer(
            self.generator,
            self.resolver,
            timeout=self.settings.division_leader_timeout,
        )

    async def run(
        self,
        request: AgentRequest,
        emitter: EventEmitter | None = None,
    ) -> SessionResult:
        """
        Run one session to completion.

        The emitter always receives a terminal ``session_done`` event unless
        the run itself is cancelled.

        Args:
            request: What to do and for which project.
            emitter: Event destination. A fresh, sink-less emitter if omitted.

        Returns:
            The aggregated session result.
        """
        emitter = emitter or EventEmitter()
        heartbeat = Heartbeat(emitter, interval=self.settings.division_heartbeat_interval)
        recorder = TaskLogRecorder(self.task_log)
        start = time.monotonic()

        logger.info(f"Session {emitter.session_id} started for project {request.project_id}")
        logger.info(f"Input: {request.input[:100]}")

        heartbeat.start()
        try:
            result = await self._run(request, emitter, recorder)
        except Exception as e:
            logger.exception(f"Session {emitter.session_id} failed unexpectedly: {e}")
            result = SessionResult(
                session_id=emitter.session_id,
                input=request.input,
                status=SessionStatus.ERROR,
                total_duration_ms=_elapsed_ms(start),
                error=str(e) or type(e).__name__,
            )
        finally:
            await heartbeat.stop()
            await recorder.drain()

        emitter.emit(
            SessionDoneEvent(
                status=result.status,
                total_duration_ms=result.total_duration_ms,
                task_count=result.task_count,
                final_output=result.final_output,
                results=result.tasks,
                error=result.error,
            )
        )

        logger.info(
            f"Session {result.session_id} finished with status {result.status.value} "
            f"in {result.total_duration_ms}ms ({result.task_count} tasks)"
        )
        return result

    async def _run(
        self,
        request: AgentRequest,
        emitter: EventEmitter,
        recorder: TaskLogRecorder,
    ) -> SessionResult:
        try:
            leader = await self.decomposer.resolve_leader(request.project_id)
        except LeaderError as e:
            logger.error(f"No leader for project {request.project_id}: {e}")
            emitter.emit(SessionStartEvent(project_id=request.project_id, input=request.input))
            emitter.emit(LeaderErrorEvent(error=str(e)))
            return self._leader_failure(request, emitter, None, e, 0)

        emitter.emit(
            SessionStartEvent(
                project_id=request.project_id,
                input=request.input,
                leader=leader.display_name,
            )
        )
        emitter.emit(LeaderStartEvent(provider=leader.display_name, model=leader.model_id))

        start = time.monotonic()
        try:
            decomposition = await self.decomposer.decompose(
                leader,
                request.input,
                history=request.history,
                on_chunk=lambda text: emitter.emit(LeaderChunkEvent(text=text)),
                api_keys=request.api_keys,
            )
        except LeaderError as e:
            logger.error(f"Leader {leader.display_name} failed: {e}")
            raw_text = e.raw_text if isinstance(e, LeaderParseError) else None
            emitter.emit(LeaderErrorEvent(error=str(e), raw_text=raw_text))
            return self._leader_failure(request, emitter, leader, e, _elapsed_ms(start))

        tasks = decomposition.tasks
        emitter.emit(
            LeaderDoneEvent(
                provider=leader.display_name,
                output=decomposition.output,
                task_count=len(tasks),
                tasks=[PlannedTask.from_task(t) for t in tasks],
                duration_ms=decomposition.duration_ms,
            )
        )

        executor = TaskExecutor(
            request.project_id,
            tasks,
            self.generator,
            self.resolver,
            emitter,
            recorder=recorder,
            overrides=request.overrides,
            api_keys=request.api_keys,
            timeout=self.settings.division_task_timeout,
        )
        scheduler = DependencyScheduler(max_concurrent=self.settings.division_max_concurrent_tasks)

        def on_wave_start(wave: Wave) -> None:
            emitter.emit(WaveStartEvent.for_wave(wave))

        def on_wave_done(wave: Wave, results: list[SubTaskResult]) -> None:
            failed = sum(1 for r in results if not r.is_success)
            emitter.emit(
                WaveDoneEvent(
                    wave_index=wave.number,
                    task_ids=wave.task_ids,
                    indices=list(wave.indices),
                    succeeded=len(results) - failed,
                    failed=failed,
                )
            )

        results = await scheduler.run(tasks, executor.execute, on_wave_start, on_wave_done)

        session = aggregate(
            results,
            session_id=emitter.session_id,
            user_input=request.input,
            total_duration_ms=_elapsed_ms(start),
            leader_provider=leader.display_name,
            leader_model=leader.model_id,
        )
        if not tasks:
            session.error = "Leader produced no tasks"
        return session

    @staticmethod
    def _leader_failure(
        request: AgentRequest,
        emitter: EventEmitter,
        leader: ProviderDescriptor | None,
        error: LeaderError,
        duration_ms: int,
    ) -> SessionResult:
        return SessionResult(
            session_id=emitter.session_id,
            input=request.input,
            leader_provider=leader.display_name if leader else None,
            leader_model=leader.model_id if leader else None,
            status=SessionStatus.ERROR,
            total_duration_ms=duration_ms,
            error=str(error),
        )

    def __repr__(self) -> str:
        return f"Division(generator={type(self.generator).__name__}, catalog={type(self.catalog).__name__})"


async def run_division(
    input_text: str,
    project_id: str | None = None,
    overrides: dict[str, str] | None = None,
    emitter: EventEmitter | None = None,
) -> SessionResult:
    """
    Convenience function to run one session with default settings.

    Args:
        input_text: The request.
        project_id: Project; the configured default if omitted.
        overrides: Role slug -> provider name.
        emitter: Event destination.

    Returns:
        The session result.
    """
    division = Division()
    request = AgentRequest(
        project_id=project_id or division.settings.division_default_project,
        input=input_text,
        overrides=overrides or {},
    )
    return await division.run(request, emitter)
