"""Offline text generator.

Produces deterministic output without calling any vendor: a fixed
five-task plan for the leader and a short echo for every other role.
Useful for dry runs, demos and tests of the coordination logic.
"""

import asyncio
import json
import re
import time

from division.decomposition.context import INSTRUCTIONS_HEADER
from division.providers.base import (
    ChunkCallback,
    GenerationRequest,
    GenerationResult,
    call_chunk_callback,
)

PERSONA_PREFIX = "You are acting as the"
SUMMARY_MAX_LENGTH = 120

_WORDS = re.compile(r"\S+\s*")


def demo_plan(user_input: str) -> dict:
    """Five-task plan with two parallel research tasks feeding a linear tail."""
    topic = user_input.strip().splitlines()[0][:80] if user_input.strip() else "the request"
    return {
        "tasks": [
            {
                "role": "search",
                "title": "Gather background",
                "input": f"Collect current facts and sources about: {topic}",
                "reason": "Ground the work in up-to-date information",
                "dependsOn": [],
            },
            {
                "role": "deep-research",
                "title": "Investigate in depth",
                "input": f"Analyse trade-offs and open issues around: {topic}",
                "reason": "Surface non-obvious considerations",
                "dependsOn": [],
            },
            {
                "role": "planning",
                "title": "Draft a plan",
                "input": "Turn the research findings into a structured plan",
                "reason": "Decide the shape of the answer",
                "dependsOn": [0, 1],
            },
            {
                "role": "writing",
                "title": "Write the answer",
                "input": f"Write the final answer to: {topic}",
                "reason": "Produce the deliverable",
                "dependsOn": [2],
            },
            {
                "role": "review",
                "title": "Review the answer",
                "input": "Check the answer for accuracy and gaps",
                "reason": "Catch mistakes before delivery",
                "dependsOn": [3],
            },
        ]
    }


def _instruction(text: str) -> str:
    """The task's own instruction, without any dependency context."""
    _, found, tail = text.rpartition(INSTRUCTIONS_HEADER)
    return tail.strip() if found else text.strip()


class EchoGenerator:
    """
    TextGenerator that never leaves the process.

    Attributes:
        delay: Seconds to sleep between streamed chunks.
        fail_roles: Role slugs whose calls return an error result.

    Example:
        >>> generator = EchoGenerator(delay=0.01)
        >>> result = await generator.generate(request)
        >>> result.status
        'success'
    """

    def __init__(self, delay: float = 0.0, fail_roles: set[str] | None = None):
        self.delay = delay
        self.fail_roles = set(fail_roles or ())
        self.calls: list[GenerationRequest] = []

    def _respond(self, request: GenerationRequest) -> GenerationResult:
        self.calls.append(request)
        prompt = request.system_prompt

        if not prompt.startswith(PERSONA_PREFIX):
            plan = json.dumps(demo_plan(request.input), indent=2)
            return GenerationResult(
                output=f"Here is the breakdown of your request:\n\n```json\n{plan}\n```\n"
            )

        slug = prompt.rsplit("(", 1)[-1].split(")", 1)[0]
        if slug in self.fail_roles:
            return GenerationResult(status="error", error_msg=f"Simulated failure for {slug}")

        summary = _instruction(request.input)[:SUMMARY_MAX_LENGTH]
        return GenerationResult(output=f"[{request.provider.display_name}] {summary}")

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        start = time.monotonic()
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self._respond(request)
        result.duration_ms = int((time.monotonic() - start) * 1000)
        return result

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
        on_thinking_chunk: ChunkCallback | None = None,
    ) -> GenerationResult:
        start = time.monotonic()
        result = self._respond(request)

        for word in _WORDS.findall(result.output):
            if self.delay:
                await asyncio.sleep(self.delay)
            await call_chunk_callback(on_chunk, word)

        result.duration_ms = int((time.monotonic() - start) * 1000)
        return result
