"""Gemini CLI response provider using subprocess.

Uses Gemini CLI with stream-json output format and collects the assistant
messages into one raw text response. Planning never needs tools, so the CLI
runs in its default approval mode and any tool use is ignored.
"""

import asyncio
import json
import logging
import shutil
import warnings
from typing import Any

from aish.domain.errors import ProviderError, RateLimitError
from aish.domain.providers.response_provider import ResponseProvider, is_rate_limit_message

logger = logging.getLogger(__name__)

# Default timeout (5 minutes)
DEFAULT_TIMEOUT = 300


class GeminiCliProvider(ResponseProvider):
    """Gemini CLI response provider using subprocess.

    Requirements:
        - Gemini CLI must be installed
        - User must be authenticated via `gemini auth login`

    Configuration:
        - model: Model to use
        - working_dir: Working directory for CLI
        - timeout: Process timeout in seconds (default: 300)
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self._validate_config()

        self._model = self.config.get("model")
        self._working_dir = self.config.get("working_dir")
        self._timeout = self.config.get("timeout", DEFAULT_TIMEOUT)

    def _validate_config(self) -> None:
        """Validate configuration and warn on unknown keys.

        Raises:
            ValueError: If config values are invalid
        """
        if not self.config:
            return

        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown GeminiCliProvider config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        timeout = self.config.get("timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata."""
        return {
            "name": "gemini-cli",
            "description": "Gemini CLI via subprocess",
            "requires_config": False,
            "config_keys": ["model", "working_dir", "timeout"],
            "default_response_timeout": DEFAULT_TIMEOUT,
            "supports_system_prompt": False,
        }

    def validate(self) -> None:
        """Verify Gemini CLI is available.

        Raises:
            ProviderError: If Gemini CLI is not installed
        """
        if shutil.which("gemini") is None:
            raise ProviderError(
                "Gemini CLI not found. "
                "Install from: https://github.com/google-gemini/gemini-cli"
            )

    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate a response using a Gemini CLI subprocess.

        The CLI has no separate system prompt channel, so the system prompt is
        prepended to the user prompt.
        """
        return asyncio.run(self._async_generate(prompt, system_prompt))

    async def _async_generate(self, prompt: str, system_prompt: str | None) -> str:
        args = self._build_args()

        full_prompt = prompt
        if system_prompt:
            full_prompt = f"{system_prompt}\n\n{prompt}"
        args.extend(["-p", full_prompt])

        try:
            process = await asyncio.create_subprocess_exec(
                "gemini",
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._working_dir,
            )
            stdout_data, stderr_data = await asyncio.wait_for(
                process.communicate(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            raise ProviderError(
                f"Gemini CLI timed out after {self._timeout}s. "
                "Consider increasing timeout config."
            )
        except FileNotFoundError:
            raise ProviderError(
                "Gemini CLI not found. "
                "Install from: https://github.com/google-gemini/gemini-cli"
            )

        if stderr_data:
            logger.debug(f"Gemini CLI stderr: {stderr_data.decode(errors='replace')}")

        if process.returncode != 0:
            raise self._wrap_process_error(
                process.returncode,
                stderr_data.decode(errors="replace") if stderr_data else "",
            )

        return self._parse_ndjson_stream(stdout_data)

    def _build_args(self) -> list[str]:
        args = ["-o", "stream-json"]
        if self._model:
            args.extend(["-m", self._model])
        return args

    def _parse_ndjson_stream(self, stdout: bytes) -> str:
        """Concatenate assistant message content from the NDJSON stream."""
        response_text = ""
        parse_errors: list[str] = []

        for line in stdout.decode(errors="replace").splitlines():
            line = line.strip()
            if not line:
                continue

            try:
                event = json.loads(line)
            except json.JSONDecodeError as e:
                sample = line[:50] + "..." if len(line) > 50 else line
                parse_errors.append(f"{str(e)[:30]} | {sample!r}")
                continue

            if event.get("type") == "message" and event.get("role") == "assistant":
                content = event.get("content", "")
                if content:
                    response_text += content

        if parse_errors:
            logger.warning(
                f"Malformed JSON lines ({len(parse_errors)}): {parse_errors[:3]}"
            )

        return response_text

    def _wrap_process_error(self, returncode: int, stderr: str) -> ProviderError:
        """Wrap subprocess errors with actionable messages."""
        stderr_lower = stderr.lower()

        if is_rate_limit_message(stderr):
            return RateLimitError(f"Gemini CLI rate limited (exit {returncode}): {stderr}")
        elif "auth" in stderr_lower or "login" in stderr_lower:
            return ProviderError(
                f"Gemini CLI authentication error. Run: gemini auth login\n{stderr}"
            )
        elif returncode == 127:
            return ProviderError(
                "Gemini CLI not found. "
                "Install from: https://github.com/google-gemini/gemini-cli"
            )
        else:
            return ProviderError(
                f"Gemini CLI failed (exit {returncode}): {stderr}"
            )
