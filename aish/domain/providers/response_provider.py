from abc import ABC, abstractmethod
from typing import Any

# Substrings providers use to report throttling
RATE_LIMIT_MARKERS = ("429", "rate limit", "rate_limit", "too many requests", "resource_exhausted")


def is_rate_limit_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


class ResponseProvider(ABC):
    """Abstract interface for model providers (Strategy pattern).

    A provider is a black box from (system prompt, user prompt) to raw text.
    The plan generator makes no assumption about the text beyond it holding a
    JSON object somewhere.
    """

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata for discovery commands.

        Returns:
            dict with keys: name, description, requires_config, config_keys,
                           default_response_timeout, supports_system_prompt
        """
        return {
            "name": "unknown",
            "description": "No description available",
            "requires_config": False,
            "config_keys": [],
            "default_response_timeout": 300,  # 5 minutes
            "supports_system_prompt": False,
        }

    @abstractmethod
    def validate(self) -> None:
        """Verify provider is accessible and configured correctly.

        Raises:
            ProviderError: If provider is misconfigured or unreachable
        """
        ...

    @abstractmethod
    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Return the model's raw text for the given prompts.

        Raises:
            RateLimitError: If the provider reports throttling
            ProviderError: If the provider call fails (network, auth, timeout, etc.)
        """
        ...

