"""Test doubles and builders shared across the suite."""

import asyncio
import json
from collections.abc import Iterable

from division.decomposition.models import SubTask, TaskId
from division.events.emitter import EventEmitter
from division.events.types import StreamEvent
from division.knowledge.catalog import InMemoryCatalog
from division.knowledge.seed import default_snapshot
from division.providers.base import (
    ChunkCallback,
    GenerationRequest,
    GenerationResult,
    call_chunk_callback,
)
from division.providers.echo import PERSONA_PREFIX


def make_task(
    index: int,
    role: str = "search",
    depends_on: Iterable[int] = (),
    text: str | None = None,
) -> SubTask:
    """Build a SubTask with sensible defaults."""
    return SubTask(
        index=TaskId(index),
        role=role,
        input=text or f"Instruction {index}",
        title=f"Task {index}",
        depends_on=frozenset(depends_on),
    )


def leader_json(tasks: list[dict]) -> str:
    """Leader response wrapping a task list in prose and a fenced block."""
    return f"Here is the plan:\n```json\n{json.dumps({'tasks': tasks})}\n```"


class ScriptedGenerator:
    """
    TextGenerator double answering per role slug.

    Attributes:
        requests: Every request received.
        timeline: ("start" | "end", slug) in the order calls began and ended.
    """

    def __init__(
        self,
        leader_output: str = "",
        outputs: dict[str, str] | None = None,
        failures: Iterable[str] = (),
        raises: dict[str, BaseException] | None = None,
        delays: dict[str, float] | None = None,
        thinking: dict[str, str] | None = None,
    ) -> None:
        self.leader_output = leader_output
        self.outputs = outputs or {}
        self.failures = set(failures)
        self.raises = raises or {}
        self.delays = delays or {}
        self.thinking = thinking or {}
        self.requests: list[GenerationRequest] = []
        self.timeline: list[tuple[str, str]] = []

    @staticmethod
    def slug_of(request: GenerationRequest) -> str:
        prompt = request.system_prompt
        if prompt.startswith(PERSONA_PREFIX):
            return prompt.rsplit("(", 1)[-1].split(")", 1)[0]
        return "leader"

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        return await self.generate_stream(request, lambda _: None)

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
        on_thinking_chunk: ChunkCallback | None = None,
    ) -> GenerationResult:
        slug = self.slug_of(request)
        self.requests.append(request)
        self.timeline.append(("start", slug))
        try:
            if self.delays.get(slug):
                await asyncio.sleep(self.delays[slug])
            if slug in self.raises:
                raise self.raises[slug]
            if slug in self.failures:
                return GenerationResult(status="error", error_msg=f"{slug} exploded", duration_ms=3)

            if slug == "leader":
                output = self.leader_output
            else:
                output = self.outputs.get(slug, f"{slug} output")

            thinking = self.thinking.get(slug)
            if thinking:
                await call_chunk_callback(on_thinking_chunk, thinking)
            if output:
                await call_chunk_callback(on_chunk, output)
            return GenerationResult(output=output, duration_ms=5, thinking=thinking)
        finally:
            self.timeline.append(("end", slug))

    def requests_for(self, slug: str) -> list[GenerationRequest]:
        return [r for r in self.requests if self.slug_of(r) == slug]


class BrokenCatalog(InMemoryCatalog):
    """Seeded catalog whose role lookup raises for the given slugs."""

    def __init__(self, broken: Iterable[str], message: str = "catalog connection lost") -> None:
        super().__init__(default_snapshot())
        self.broken = set(broken)
        self.message = message

    async def get_role(self, slug: str):
        if slug in self.broken:
            raise RuntimeError(self.message)
        return await super().get_role(slug)


class RecordingEmitter(EventEmitter):
    """Emitter that keeps every stamped event."""

    def __init__(self, session_id: str | None = None) -> None:
        super().__init__(session_id)
        self.events: list[StreamEvent] = []
        self.subscribe(self.events.append)

    def types(self) -> list[str]:
        return [e.type for e in self.events]

    def of_type(self, event_type: str) -> list[StreamEvent]:
        return [e for e in self.events if e.type == event_type]
