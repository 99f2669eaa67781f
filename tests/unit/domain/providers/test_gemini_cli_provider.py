"""Unit tests for GeminiCliProvider."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aish.domain.errors import ProviderError, RateLimitError
from aish.domain.providers.gemini_cli_provider import DEFAULT_TIMEOUT, GeminiCliProvider


def make_ndjson(*events: dict) -> bytes:
    """Helper to create NDJSON byte stream."""
    lines = [json.dumps(e) for e in events]
    return "\n".join(lines).encode()


class TestGeminiCliProviderInit:
    """Tests for provider initialization."""

    def test_init_with_no_config(self):
        provider = GeminiCliProvider()

        assert provider._model is None
        assert provider._working_dir is None
        assert provider._timeout == DEFAULT_TIMEOUT

    def test_init_with_full_config(self):
        provider = GeminiCliProvider({"model": "gemini-2.5-flash", "working_dir": "/work", "timeout": 30})

        assert provider._model == "gemini-2.5-flash"
        assert provider._working_dir == "/work"
        assert provider._timeout == 30

    def test_unknown_config_keys_emit_warning(self):
        with pytest.warns(UserWarning, match="Unknown GeminiCliProvider config keys"):
            GeminiCliProvider({"model": "x", "sandbox": True})

    def test_invalid_timeout_raises_value_error(self):
        with pytest.raises(ValueError, match="timeout must be > 0"):
            GeminiCliProvider({"timeout": 0})


class TestGeminiCliProviderValidate:

    def test_validate_passes_when_cli_available(self):
        with patch("aish.domain.providers.gemini_cli_provider.shutil.which", return_value="/usr/bin/gemini"):
            GeminiCliProvider().validate()

    def test_validate_fails_when_cli_not_found(self):
        with patch("aish.domain.providers.gemini_cli_provider.shutil.which", return_value=None):
            with pytest.raises(ProviderError, match="Gemini CLI not found"):
                GeminiCliProvider().validate()


class TestGeminiCliProviderParse:

    def test_parse_joins_assistant_messages(self):
        stdout = make_ndjson(
            {"type": "message", "role": "assistant", "content": '{"intent": '},
            {"type": "message", "role": "user", "content": "ignored"},
            {"type": "message", "role": "assistant", "content": '"x"}'},
        )

        assert GeminiCliProvider()._parse_ndjson_stream(stdout) == '{"intent": "x"}'

    def test_parse_skips_malformed_lines(self):
        stdout = b'not json\n' + make_ndjson({"type": "message", "role": "assistant", "content": "ok"})

        assert GeminiCliProvider()._parse_ndjson_stream(stdout) == "ok"

    def test_parse_handles_empty_output(self):
        assert GeminiCliProvider()._parse_ndjson_stream(b"") == ""


class TestGeminiCliProviderGenerate:
    """Tests for generate() method with mocked subprocess."""

    @pytest.fixture
    def mock_subprocess(self):
        """Mock asyncio.create_subprocess_exec."""
        with patch("asyncio.create_subprocess_exec") as mock:
            process = AsyncMock()
            process.returncode = 0
            process.communicate = AsyncMock(return_value=(
                make_ndjson({"type": "message", "role": "assistant", "content": "Hello"}),
                b"",
            ))
            mock.return_value = process
            yield mock, process

    def test_generate_prepends_system_prompt(self, mock_subprocess):
        mock, _ = mock_subprocess

        result = GeminiCliProvider().generate("User prompt", system_prompt="System rules")

        call_args = mock.call_args[0]
        assert call_args[0] == "gemini"
        assert call_args[call_args.index("-p") + 1] == "System rules\n\nUser prompt"
        assert result == "Hello"

    def test_generate_requests_stream_json_and_model(self, mock_subprocess):
        mock, _ = mock_subprocess

        GeminiCliProvider({"model": "gemini-2.5-pro"}).generate("p")

        call_args = mock.call_args[0]
        assert call_args[call_args.index("-o") + 1] == "stream-json"
        assert call_args[call_args.index("-m") + 1] == "gemini-2.5-pro"

    def test_generate_maps_rate_limit_stderr(self, mock_subprocess):
        _, process = mock_subprocess
        process.returncode = 1
        process.communicate = AsyncMock(return_value=(b"", b"Error 429: RESOURCE_EXHAUSTED"))

        with pytest.raises(RateLimitError):
            GeminiCliProvider().generate("p")

    def test_generate_maps_auth_error(self, mock_subprocess):
        _, process = mock_subprocess
        process.returncode = 1
        process.communicate = AsyncMock(return_value=(b"", b"please login first"))

        with pytest.raises(ProviderError, match="authentication"):
            GeminiCliProvider().generate("p")

    def test_generate_timeout_kills_process(self, mock_subprocess):
        _, process = mock_subprocess
        process.kill = MagicMock()

        with patch("asyncio.wait_for", side_effect=asyncio.TimeoutError):
            with pytest.raises(ProviderError, match="timed out"):
                GeminiCliProvider({"timeout": 5}).generate("p")

        process.kill.assert_called_once()

    def test_generate_tolerates_undecodable_bytes(self, mock_subprocess):
        _, process = mock_subprocess
        event = json.dumps({"type": "message", "role": "assistant", "content": "ok"}).encode()
        process.communicate = AsyncMock(return_value=(b"\xff\xfe garbage\n" + event, b"\xff"))

        assert GeminiCliProvider().generate("p") == "ok"

    def test_generate_error_with_undecodable_stderr_is_provider_error(self, mock_subprocess):
        _, process = mock_subprocess
        process.returncode = 2
        process.communicate = AsyncMock(return_value=(b"", b"boom \xff"))

        with pytest.raises(ProviderError):
            GeminiCliProvider().generate("p")
