"""Provider seam: descriptors, the TextGenerator protocol, key and role resolution."""

from division.providers.api_keys import resolve_api_key
from division.providers.base import (
    GenerationRequest,
    GenerationResult,
    ProviderDescriptor,
    RoleDescriptor,
    TextGenerator,
    load_generator,
)
from division.providers.resolver import RoleProviderResolver

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "ProviderDescriptor",
    "RoleDescriptor",
    "RoleProviderResolver",
    "TextGenerator",
    "load_generator",
    "resolve_api_key",
]
