"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    # Division Configuration
    division_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    division_debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    division_log_dir: str | None = Field(
        default="logs",
        description="Directory for rotating log files (empty disables file logging)",
    )
    division_heartbeat_interval: float = Field(
        default=15.0,
        ge=0.01,
        description="Seconds between heartbeat events on a session stream",
    )
    division_max_concurrent_tasks: int = Field(
        default=16,
        ge=1,
        le=256,
        description="Maximum number of sub-tasks executing at once inside a wave",
    )
    division_task_timeout: int = Field(
        default=600,
        ge=1,
        description="Sub-task timeout in seconds",
    )
    division_leader_timeout: int = Field(
        default=300,
        ge=1,
        description="Leader decomposition timeout in seconds",
    )
    division_cancel_on_disconnect: bool = Field(
        default=True,
        description="Cancel in-flight provider calls when the stream consumer goes away",
    )
    division_default_project: str = Field(
        default="demo-project-001",
        description="Project used when none is given",
    )
    division_catalog_path: str | None = Field(
        default=None,
        description="JSON catalog file (built-in seed when unset)",
    )
    division_generator: str = Field(
        default="division.providers.echo:EchoGenerator",
        description="Import path of the text generation implementation",
    )

    # Database (optional)
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy async URL for catalog and task log storage",
    )

    # Server-side provider keys
    anthropic_api_key: SecretStr | None = None
    google_api_key: SecretStr | None = None
    openai_api_key: SecretStr | None = None
    perplexity_api_key: SecretStr | None = None
    xai_api_key: SecretStr | None = None
    deepseek_api_key: SecretStr | None = None
    mistral_api_key: SecretStr | None = None
    meta_api_key: SecretStr | None = None
    qwen_api_key: SecretStr | None = None
    cohere_api_key: SecretStr | None = None
    moonshot_api_key: SecretStr | None = None

    def provider_key(self, env_var: str) -> str | None:
        """Get a server-side provider key by its environment variable name.

        Args:
            env_var: Variable name such as ``ANTHROPIC_API_KEY``.

        Returns:
            The secret value, or None when unset.
        """
        secret = getattr(self, env_var.lower(), None)
        if isinstance(secret, SecretStr):
            return secret.get_secret_value() or None
        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.

    Example:
        >>> settings = get_settings()
        >>> settings.division_heartbeat_interval
        15.0
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
