"""
Per-task executor for Division.

Runs one sub-task end to end: resolve its role and provider, enrich its
input with dependency outputs, stream the provider call through the event
emitter, and turn every failure into an error result instead of raising.
"""

import asyncio
import time
from collections.abc import Sequence

from loguru import logger

from division.core.errors import ProviderCallError, TaskError
from division.decomposition.context import enrich_input
from division.decomposition.models import DependencyOutput, SubTask, SubTaskResult, TaskStatus, Wave
from division.events.emitter import EventEmitter
from division.events.task_log import TaskLogRecorder
from division.events.types import (
    TaskChunkEvent,
    TaskDoneEvent,
    TaskErrorEvent,
    TaskStartEvent,
    TaskThinkingChunkEvent,
)
from division.knowledge.catalog import TaskLogEntry
from division.providers.api_keys import resolve_api_key
from division.providers.base import (
    GenerationRequest,
    ProviderDescriptor,
    RoleDescriptor,
    TextGenerator,
    persona_prompt,
)
from division.providers.resolver import RoleProviderResolver

UNASSIGNED_PROVIDER = "unassigned"
UNKNOWN_MODEL = "unknown"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class TaskExecutor:
    """
    Execute the sub-tasks of one session.

    Holds the session's dependency outputs: written once per index by the
    task that owns it, read by dependents in later waves.

    Attributes:
        project_id: Project whose role bindings apply.
        tasks: The session's sub-tasks, indexed by position.
        timeout: Per-task timeout in seconds.
        dependency_outputs: Successful, non-empty outputs by task index.

    Example:
        >>> executor = TaskExecutor(project_id, tasks, generator, resolver, emitter)
        >>> results = await DependencyScheduler().run(tasks, executor.execute)
    """

    def __init__(
        self,
        project_id: str,
        tasks: Sequence[SubTask],
        generator: TextGenerator,
        resolver: RoleProviderResolver,
        emitter: EventEmitter,
        recorder: TaskLogRecorder | None = None,
        overrides: dict[str, str] | None = None,
        api_keys: dict[str, str] | None = None,
        timeout: float = 600,
    ):
        self.project_id = project_id
        self.tasks = list(tasks)
        self.generator = generator
        self.resolver = resolver
        self.emitter = emitter
        self.recorder = recorder
        self.overrides = dict(overrides or {})
        self.api_keys = dict(api_keys or {})
        self.timeout = timeout
        self.dependency_outputs: dict[int, DependencyOutput] = {}

    async def execute(self, index: int, wave: Wave) -> SubTaskResult:
        """
        Run one sub-task. Never raises for task-stage failures.

        Args:
            index: Task index.
            wave: Wave the task belongs to.

        Returns:
            The task's result (success or error).
        """
        task = self.tasks[index]
        start = time.monotonic()

        try:
            role, provider = await self.resolver.resolve(self.project_id, task.role, self.overrides)
        except TaskError as e:
            logger.warning(f"{task.task_id} [{task.role}]: {e}")
            return self._unresolved(task, wave, str(e), start)
        except Exception as e:
            logger.exception(f"{task.task_id} [{task.role}]: provider lookup failed: {e}")
            return self._unresolved(task, wave, f"Provider lookup failed: {e}", start)

        enriched = enrich_input(task, self.dependency_outputs)
        logger.info(f"Executing {task.task_id} [{task.role}] -> {provider.display_name}")
        self._emit_start(task, wave, provider.display_name, provider.model_id, enriched)

        result = await self._generate(task, wave, role, provider, enriched, start)

        if result.is_success:
            if result.output:
                self.dependency_outputs[index] = DependencyOutput(
                    index=index,
                    role_name=role.name,
                    provider_name=provider.display_name,
                    output=result.output,
                )
            self.emitter.emit(TaskDoneEvent.from_result(result))
            logger.info(f"{task.task_id} done in {result.duration_ms}ms")
        else:
            self.emitter.emit(TaskErrorEvent.from_result(result))
            logger.warning(f"{task.task_id} failed: {result.error_msg}")

        if self.recorder is not None:
            self.recorder.record(
                TaskLogEntry(
                    project_id=self.project_id,
                    role_id=role.id,
                    provider_id=provider.id,
                    input=enriched,
                    output=result.output or None,
                    status=result.status.value,
                    error_msg=result.error_msg,
                    duration_ms=result.duration_ms,
                )
            )

        return result

    def _unresolved(self, task: SubTask, wave: Wave, error: str, start: float) -> SubTaskResult:
        self._emit_start(task, wave, UNASSIGNED_PROVIDER, UNKNOWN_MODEL, task.input)
        result = SubTaskResult.failed(
            task,
            error,
            provider=UNASSIGNED_PROVIDER,
            model=UNKNOWN_MODEL,
            duration_ms=_elapsed_ms(start),
            wave=wave.number,
        )
        self.emitter.emit(TaskErrorEvent.from_result(result))
        return result

    async def _generate(
        self,
        task: SubTask,
        wave: Wave,
        role: RoleDescriptor,
        provider: ProviderDescriptor,
        enriched: str,
        start: float,
    ) -> SubTaskResult:
        request = GenerationRequest(
            provider=provider,
            system_prompt=persona_prompt(role),
            input=enriched,
            api_key=resolve_api_key(provider, self.api_keys),
        )

        def on_chunk(text: str) -> None:
            self.emitter.emit(
                TaskChunkEvent(
                    task_id=task.task_id,
                    index=task.index,
                    role=task.role,
                    text=text,
                    wave=wave.number,
                )
            )

        def on_thinking_chunk(text: str) -> None:
            self.emitter.emit(
                TaskThinkingChunkEvent(
                    task_id=task.task_id,
                    index=task.index,
                    role=task.role,
                    text=text,
                    wave=wave.number,
                )
            )

        try:
            generated = await asyncio.wait_for(
                self.generator.generate_stream(request, on_chunk, on_thinking_chunk),
                timeout=self.timeout,
            )
            if not generated.is_success:
                raise ProviderCallError(generated.error_msg or "Provider returned an error")
        except TimeoutError:
            error: Exception = ProviderCallError(f"Task timed out after {self.timeout} seconds")
        except ProviderCallError as e:
            error = e
        except Exception as e:
            error = ProviderCallError(str(e) or type(e).__name__)
        else:
            return SubTaskResult.from_task(
                task,
                provider=provider.display_name,
                model=provider.model_id,
                output=generated.output,
                status=TaskStatus.SUCCESS,
                duration_ms=generated.duration_ms or _elapsed_ms(start),
                thinking=generated.thinking,
                citations=generated.citations,
                wave=wave.number,
            )

        return SubTaskResult.failed(
            task,
            str(error),
            provider=provider.display_name,
            model=provider.model_id,
            duration_ms=_elapsed_ms(start),
            wave=wave.number,
        )

    def _emit_start(
        self,
        task: SubTask,
        wave: Wave,
        provider: str,
        model: str,
        enriched: str,
    ) -> None:
        self.emitter.emit(
            TaskStartEvent(
                task_id=task.task_id,
                index=task.index,
                total=len(self.tasks),
                role=task.role,
                provider=provider,
                model=model,
                input=enriched,
                wave=wave.number,
            )
        )
