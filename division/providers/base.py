"""Text generation seam - the contract the coordinator calls as a black box.

Vendor-specific request building and stream parsing live behind
``TextGenerator``; the coordinator only sees descriptors, requests and
results defined here.
"""

import importlib
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ChunkCallback = Callable[[str], None] | Callable[[str], Awaitable[None]]


class WireModel(BaseModel):
    """Base for models serialized to camelCase JSON on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump as camelCase JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True)


class ProviderDescriptor(WireModel):
    """An AI model endpoint that can generate text."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    display_name: str
    api_base_url: str = ""
    api_type: str
    model_id: str
    description: str | None = None
    is_enabled: bool = True


class RoleDescriptor(WireModel):
    """A named capability category (coding, search, ...)."""

    model_config = ConfigDict(frozen=True)

    id: str
    slug: str
    name: str
    description: str | None = None


class ChatMessage(WireModel):
    """One prior conversation turn."""

    role: Literal["user", "assistant"]
    content: str


class GenerationRequest(BaseModel):
    """Everything a generator needs for one call."""

    provider: ProviderDescriptor
    system_prompt: str
    input: str
    history: list[ChatMessage] = Field(default_factory=list)
    api_key: str | None = None


class GenerationResult(BaseModel):
    """Outcome of one generation call."""

    output: str = ""
    duration_ms: int = 0
    status: Literal["success", "error"] = "success"
    error_msg: str | None = None
    thinking: str | None = None
    citations: list[str] | None = None

    @property
    def is_success(self) -> bool:
        return self.status == "success"


@runtime_checkable
class TextGenerator(Protocol):
    """Pluggable text generation capability."""

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate the full output in one call."""
        ...

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
        on_thinking_chunk: ChunkCallback | None = None,
    ) -> GenerationResult:
        """Generate, reporting incremental text through the callbacks."""
        ...


def persona_prompt(role: RoleDescriptor) -> str:
    """Default system prompt for a sub-task's role."""
    return f"You are acting as the {role.name} ({role.slug}) role."


async def call_chunk_callback(callback: ChunkCallback | None, text: str) -> None:
    """Invoke a sync or async chunk callback."""
    if callback is None:
        return
    result = callback(text)
    if isinstance(result, Awaitable):
        await result


def load_generator(path: str, **kwargs: Any) -> TextGenerator:
    """
    Instantiate a TextGenerator from a ``module:attribute`` import path.

    Args:
        path: Import path, e.g. ``division.providers.echo:EchoGenerator``.
        **kwargs: Passed to the factory.

    Returns:
        Generator instance.

    Raises:
        ValueError: If the path is malformed or the object is not a generator.
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Generator path must look like 'module:attribute', got {path!r}")

    factory = getattr(importlib.import_module(module_name), attr)
    generator = factory(**kwargs)

    if not isinstance(generator, TextGenerator):
        raise ValueError(f"{path} does not implement generate/generate_stream")

    return generator
