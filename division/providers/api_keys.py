"""API key resolution for provider calls.

Keys come from two places: server-side settings (the vendor environment
variables) and keys the caller supplied with the request. Callers pass
keys under whatever name they find natural, so request keys are matched
by provider name, api type, common aliases and the env var name itself.
"""

from division.core.config import Settings, get_settings
from division.providers.base import ProviderDescriptor

# Maps provider api_type to the corresponding environment variable name.
ENV_KEY_MAP: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
    "xai": "XAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "meta": "META_API_KEY",
    "qwen": "QWEN_API_KEY",
    "cohere": "COHERE_API_KEY",
    "moonshot": "MOONSHOT_API_KEY",
}

# Names users commonly use for a vendor's key in the request body.
API_KEY_ALIASES: dict[str, list[str]] = {
    "anthropic": ["anthropic", "claude", "ANTHROPIC_API_KEY"],
    "google": ["google", "gemini", "GOOGLE_API_KEY"],
    "openai": ["openai", "gpt", "OPENAI_API_KEY"],
    "perplexity": ["perplexity", "PERPLEXITY_API_KEY"],
    "xai": ["xai", "grok", "XAI_API_KEY"],
    "deepseek": ["deepseek", "DEEPSEEK_API_KEY"],
    "mistral": ["mistral", "MISTRAL_API_KEY"],
    "meta": ["meta", "llama", "META_API_KEY"],
    "qwen": ["qwen", "QWEN_API_KEY"],
    "cohere": ["cohere", "COHERE_API_KEY"],
    "moonshot": ["moonshot", "MOONSHOT_API_KEY"],
}


def resolve_api_key(
    provider: ProviderDescriptor,
    api_keys: dict[str, str] | None = None,
    use_environment: bool = True,
    settings: Settings | None = None,
) -> str | None:
    """
    Resolve the API key for a provider.

    Resolution order:
        1. Server-side key for the provider's api_type (when use_environment).
        2. Request keys by provider name, api_type, alias, then env var name.

    Args:
        provider: Provider the key is for.
        api_keys: Keys supplied with the request.
        use_environment: Whether server-side keys may be used.
        settings: Optional settings override.

    Returns:
        The key, or None when nothing matches.

    Example:
        >>> resolve_api_key(claude, {"claude": "sk-ant-..."}, use_environment=False)
        'sk-ant-...'
    """
    env_var = ENV_KEY_MAP.get(provider.api_type)

    if use_environment and env_var:
        server_key = (settings or get_settings()).provider_key(env_var)
        if server_key:
            return server_key

    if not api_keys:
        return None

    if api_keys.get(provider.name):
        return api_keys[provider.name]

    if api_keys.get(provider.api_type):
        return api_keys[provider.api_type]

    for alias in API_KEY_ALIASES.get(provider.api_type, []):
        if api_keys.get(alias):
            return api_keys[alias]

    if env_var and api_keys.get(env_var):
        return api_keys[env_var]

    return None
