"""Claude Code response provider using the Claude Agent SDK.

Planning is a pure text task: the agent runs without tools and with a single
turn, and the assistant text blocks are returned as the raw response.
"""

import asyncio
import shutil
import warnings
from typing import Any

from aish.domain.errors import ProviderError, RateLimitError
from aish.domain.providers.response_provider import ResponseProvider, is_rate_limit_message


DEFAULT_MAX_TURNS = 1


class ClaudeCodeProvider(ResponseProvider):
    """Response provider using Claude Agent SDK.

    Requirements:
        - claude-agent-sdk package must be installed
        - Claude Code CLI must be installed and authenticated (via `claude login`)

    Configuration:
        - model: Model to use (e.g., "sonnet", "opus")
        - working_dir: Working directory for Claude
        - max_turns: Maximum agent iterations (default: 1)
        - max_output_tokens: Output token limit
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self._validate_config()

        self._model = self.config.get("model")
        self._working_dir = self.config.get("working_dir")
        self._max_turns = self.config.get("max_turns", DEFAULT_MAX_TURNS)
        self._max_output_tokens = self.config.get("max_output_tokens")

    def _validate_config(self) -> None:
        """Validate configuration and warn on unknown keys.

        Raises:
            ValueError: If config values are invalid (e.g., max_turns < 1)
        """
        if not self.config:
            return

        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown ClaudeCodeProvider config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        max_turns = self.config.get("max_turns")
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be >= 1")

        max_output = self.config.get("max_output_tokens")
        if max_output is not None and max_output < 1:
            raise ValueError("max_output_tokens must be >= 1")

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata."""
        return {
            "name": "claude-code",
            "description": "Claude Code via Agent SDK",
            "requires_config": False,
            "config_keys": ["model", "working_dir", "max_turns", "max_output_tokens"],
            "default_response_timeout": 600,
            "supports_system_prompt": True,
        }

    def validate(self) -> None:
        """Verify SDK and CLI are available.

        Raises:
            ProviderError: If SDK not installed or CLI not found
        """
        try:
            from claude_agent_sdk import query  # noqa: F401
        except ImportError:
            raise ProviderError(
                "claude-agent-sdk not installed. "
                "Install with: pip install claude-agent-sdk"
            )

        if shutil.which("claude") is None:
            raise ProviderError(
                "Claude Code CLI not found. "
                "Install from: https://docs.anthropic.com/claude-code"
            )

    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate a response using Claude Agent SDK.

        Uses asyncio.run() to wrap the async SDK in a sync interface.
        """
        return asyncio.run(self._async_generate(prompt, system_prompt))

    async def _async_generate(self, prompt: str, system_prompt: str | None) -> str:
        try:
            from claude_agent_sdk import query
            from claude_agent_sdk.types import AssistantMessage
        except ImportError:
            raise ProviderError(
                "claude-agent-sdk not installed. "
                "Install with: pip install claude-agent-sdk"
            )

        options = self._build_options(system_prompt)
        response_text = ""

        try:
            async for message in query(prompt=prompt, options=options):
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if hasattr(block, "text"):
                            response_text += block.text
        except Exception as e:
            raise self._wrap_sdk_error(e)

        return response_text

    def _build_options(self, system_prompt: str | None) -> "ClaudeAgentOptions":
        from claude_agent_sdk import ClaudeAgentOptions

        env: dict[str, str] = {}
        if self._max_output_tokens is not None:
            env["CLAUDE_CODE_MAX_OUTPUT_TOKENS"] = str(self._max_output_tokens)

        return ClaudeAgentOptions(
            model=self._model,
            allowed_tools=[],
            cwd=self._working_dir,
            max_turns=self._max_turns,
            system_prompt=system_prompt,
            env=env,
        )

    def _wrap_sdk_error(self, error: Exception) -> ProviderError:
        """Wrap SDK exceptions with actionable error messages."""
        error_type = type(error).__name__

        if is_rate_limit_message(str(error)):
            return RateLimitError(f"Claude Code rate limited: {error}")
        elif error_type == "CLINotFoundError":
            return ProviderError(
                "Claude Code CLI not found. "
                "Install from: https://docs.anthropic.com/claude-code"
            )
        elif error_type == "ProcessError":
            return ProviderError(f"Claude Code process failed: {error}")
        elif error_type == "TimeoutError" or "timeout" in str(error).lower():
            return ProviderError(f"Claude Code timed out: {error}")
        else:
            return ProviderError(f"Claude Agent SDK error ({error_type}): {error}")
