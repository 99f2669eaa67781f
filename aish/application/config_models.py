"""Configuration models.

Config structure (``~/.aish/config.yml`` or ``<project>/.ai/config.yml``):

    provider: claude-code
    providers:
      claude-code:
        model: sonnet
      gemini-cli:
        timeout: 120
    generation:
      max_attempts: 3
      backoff_seconds: 0.5
      rate_limit_wait_seconds: 60
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from aish.domain.constants import (
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MEMORY_DIRNAME,
    DEFAULT_RATE_LIMIT_WAIT_SECONDS,
)


class GenerationConfig(BaseModel):
    """Retry policy for plan generation."""

    model_config = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    backoff_seconds: float = Field(default=DEFAULT_BACKOFF_SECONDS, ge=0)
    rate_limit_wait_seconds: float = Field(default=DEFAULT_RATE_LIMIT_WAIT_SECONDS, ge=0)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    model_config = ConfigDict(extra="forbid")

    provider: str = "gemini-cli"
    providers: dict[str, dict[str, Any]] = Field(default_factory=dict)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    memory_dir: str = DEFAULT_MEMORY_DIRNAME

    def provider_config(self, key: str | None = None) -> dict[str, Any]:
        """Return the constructor config for a provider (default: the selected one)."""
        return dict(self.providers.get(key or self.provider, {}))
