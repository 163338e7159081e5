"""Leader decomposer - turns one request into a list of sub-tasks.

The leader model is asked for JSON only, but models wrap it in prose or
code fences often enough that extraction is best-effort. All of that lives
in ``parse_leader_response``, which returns a typed result instead of
raising; ``LeaderDecomposer`` turns a failed parse into ``LeaderParseError``.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any

from loguru import logger

from division.core.errors import (
    LeaderCallError,
    LeaderParseError,
    ProviderUnassignedError,
    RoleNotFoundError,
)
from division.decomposition.models import SubTask, TaskId
from division.providers.api_keys import resolve_api_key
from division.providers.base import (
    ChatMessage,
    ChunkCallback,
    GenerationRequest,
    ProviderDescriptor,
    TextGenerator,
)
from division.providers.resolver import LEADER_ROLE, RoleProviderResolver

LEADER_SYSTEM_PROMPT = """You are the leader of a team of AI specialists. Analyze the user's request and break it down into concrete sub-tasks for the specialist roles below.

Available roles:
- search: web search and information gathering
- deep-research: thorough multi-angle investigation, comprehensive analysis, detailed reports
- planning: planning, design and strategy
- coding: code generation and debugging
- writing: prose and documentation
- review: review and quality checks

Rules:
1. Every task implicitly gets a zero-based index in the order you list it.
2. When a task needs the results of other tasks, list their indices in "dependsOn".
3. Leave "dependsOn" empty for tasks that can run in parallel with everything before them.
4. Give each task a short "title" (50 characters or fewer).
5. "input" is the concrete instruction handed directly to that role's AI.
6. Always produce at least 5 tasks. For complex requests, split the work into 8 to 15 tasks.
7. Do not pack several jobs into one task; research, planning, implementation and review are separate tasks.
8. Use separate tasks for the same role when the angle or target differs.
9. Reply with JSON only, in exactly this format. No explanations.

```json
{
  "tasks": [
    {
      "role": "search",
      "title": "Task title",
      "input": "Concrete instruction for this role",
      "reason": "Why this task is needed",
      "dependsOn": []
    }
  ]
}
```"""

TITLE_MAX_LENGTH = 50

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?[ \t]*\n?(.*?)\n?[ \t]*```", re.DOTALL)


# =============================================================================
# PARSE RESULT
# =============================================================================


@dataclass(frozen=True)
class ParseOk:
    """Leader output parsed into tasks."""

    tasks: list[SubTask]


@dataclass(frozen=True)
class ParseErr:
    """Leader output rejected; the raw text is kept for diagnosis."""

    reason: str
    raw_text: str


ParseResult = ParseOk | ParseErr


# =============================================================================
# JSON EXTRACTION
# =============================================================================


def _first_object_span(text: str) -> str | None:
    """Return the first balanced top-level ``{...}`` span in ``text``.

    Braces inside JSON strings are ignored. When the first object never
    closes, the span runs to the last ``}`` in the text.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]

    end = text.rfind("}")
    if end > start:
        return text[start : end + 1]
    return None


def extract_json_candidates(text: str) -> list[str]:
    """
    Candidate JSON texts in preference order.

    A fenced code block (tagged ``json`` or untagged) comes first, then the
    first top-level object in the raw text.

    Args:
        text: Raw leader output.

    Returns:
        Candidate strings, possibly empty.
    """
    candidates: list[str] = []

    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())

    span = _first_object_span(text)
    if span and span not in candidates:
        candidates.append(span)

    return candidates


def _coerce_depends_on(value: Any) -> frozenset[int]:
    """Keep integer entries of a dependsOn list, dropping everything else."""
    if not isinstance(value, list):
        return frozenset()

    indices: set[int] = set()
    for entry in value:
        if isinstance(entry, bool):
            continue
        if isinstance(entry, int):
            indices.add(entry)
        elif isinstance(entry, float) and entry.is_integer():
            indices.add(int(entry))
    return frozenset(indices)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _build_tasks(parsed: Any) -> list[SubTask]:
    if not isinstance(parsed, dict):
        raise ValueError("Leader response is not a JSON object")

    raw_tasks = parsed.get("tasks")
    if not isinstance(raw_tasks, list):
        raise ValueError("Leader response missing 'tasks' array")

    tasks: list[SubTask] = []
    for index, raw in enumerate(raw_tasks):
        if not isinstance(raw, dict):
            raise ValueError(f"Task {index} is not a JSON object")

        instruction = _as_text(raw.get("input") or raw.get("description"))
        title = _as_text(raw.get("title")).strip() or instruction[:TITLE_MAX_LENGTH]

        tasks.append(
            SubTask(
                index=TaskId(index),
                role=_as_text(raw.get("role")).strip(),
                input=instruction,
                reason=_as_text(raw.get("reason")),
                title=title,
                depends_on=_coerce_depends_on(raw.get("dependsOn")),
            )
        )

    return tasks


def parse_leader_response(text: str) -> ParseResult:
    """
    Parse the leader's output into sub-tasks.

    Args:
        text: Raw leader output, possibly wrapped in prose or fences.

    Returns:
        ParseOk with the tasks, or ParseErr with the reason and raw text.

    Example:
        >>> result = parse_leader_response('Sure! {"tasks": [{"role": "search", "input": "x"}]}')
        >>> result.tasks[0].role
        'search'
    """
    candidates = extract_json_candidates(text)
    if not candidates:
        return ParseErr(reason="No JSON object found in leader response", raw_text=text)

    first_error: str | None = None
    for candidate in candidates:
        try:
            return ParseOk(tasks=_build_tasks(json.loads(candidate)))
        except (json.JSONDecodeError, ValueError) as e:
            if first_error is None:
                first_error = str(e)

    return ParseErr(reason=first_error or "Unparseable leader response", raw_text=text)


# =============================================================================
# DECOMPOSER
# =============================================================================


@dataclass
class Decomposition:
    """A successful leader run."""

    provider: ProviderDescriptor
    output: str
    tasks: list[SubTask]
    duration_ms: int


class LeaderDecomposer:
    """
    Ask the leader provider to decompose a request.

    Example:
        >>> decomposer = LeaderDecomposer(generator, resolver)
        >>> provider = await decomposer.resolve_leader("demo-project-001")
        >>> result = await decomposer.decompose(provider, "Build a landing page")
        >>> len(result.tasks)
        6
    """

    def __init__(
        self,
        generator: TextGenerator,
        resolver: RoleProviderResolver,
        timeout: float = 300,
        system_prompt: str = LEADER_SYSTEM_PROMPT,
    ) -> None:
        self.generator = generator
        self.resolver = resolver
        self.timeout = timeout
        self.system_prompt = system_prompt

    async def resolve_leader(self, project_id: str) -> ProviderDescriptor:
        """
        Find the provider bound to the leader role. Overrides do not apply.

        Raises:
            LeaderCallError: If no leader is configured for the project.
        """
        try:
            _, provider = await self.resolver.resolve(project_id, LEADER_ROLE)
        except (RoleNotFoundError, ProviderUnassignedError) as e:
            raise LeaderCallError(str(e)) from e
        return provider

    async def decompose(
        self,
        provider: ProviderDescriptor,
        user_input: str,
        history: list[ChatMessage] | None = None,
        on_chunk: ChunkCallback | None = None,
        api_keys: dict[str, str] | None = None,
    ) -> Decomposition:
        """
        Run the leader and parse its task list.

        Args:
            provider: Leader provider (see resolve_leader).
            user_input: The user's request.
            history: Prior conversation turns.
            on_chunk: Receives incremental leader text when streaming.
            api_keys: Request-supplied provider keys.

        Returns:
            Decomposition with the parsed tasks.

        Raises:
            LeaderCallError: The provider call failed or timed out.
            LeaderParseError: The output held no usable task list.
        """
        request = GenerationRequest(
            provider=provider,
            system_prompt=self.system_prompt,
            input=user_input,
            history=list(history or []),
            api_key=resolve_api_key(provider, api_keys),
        )

        logger.info(f"Leader {provider.display_name} ({provider.model_id}) decomposing request")

        try:
            if on_chunk is not None:
                call = self.generator.generate_stream(request, on_chunk)
            else:
                call = self.generator.generate(request)
            result = await asyncio.wait_for(call, timeout=self.timeout)
        except TimeoutError as e:
            raise LeaderCallError(f"Leader timed out after {self.timeout} seconds") from e
        except Exception as e:
            raise LeaderCallError(f"Leader call failed: {e}") from e

        if not result.is_success:
            raise LeaderCallError(result.error_msg or "Leader call failed")

        parsed = parse_leader_response(result.output)
        if isinstance(parsed, ParseErr):
            logger.error(f"Leader response could not be parsed: {parsed.reason}")
            raise LeaderParseError(parsed.reason, parsed.raw_text)

        logger.info(f"Leader decomposed request into {len(parsed.tasks)} tasks")
        for task in parsed.tasks:
            deps = ", ".join(str(d) for d in sorted(task.depends_on)) or "-"
            logger.debug(f"  {task.task_id} [{task.role}] deps={deps} {task.input[:60]}")

        return Decomposition(
            provider=provider,
            output=result.output,
            tasks=parsed.tasks,
            duration_ms=result.duration_ms,
        )
