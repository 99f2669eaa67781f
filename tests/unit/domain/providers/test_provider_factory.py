"""Tests for ProviderFactory and the rate limit helper."""

import pytest

from aish.domain.providers import ClaudeCodeProvider, GeminiCliProvider, ProviderFactory
from aish.domain.providers.response_provider import is_rate_limit_message
from tests.fakes.scripted_provider import ScriptedProvider


class TestProviderFactory:

    def test_builtin_providers_registered(self):
        providers = ProviderFactory.list_providers()

        assert "gemini-cli" in providers
        assert "claude-code" in providers

    def test_create_builtin_with_config(self):
        provider = ProviderFactory.create("gemini-cli", {"timeout": 10})

        assert isinstance(provider, GeminiCliProvider)
        assert provider._timeout == 10

    def test_create_without_config(self):
        assert isinstance(ProviderFactory.create("claude-code"), ClaudeCodeProvider)

    def test_unknown_provider_lists_available(self):
        with pytest.raises(KeyError) as exc_info:
            ProviderFactory.create("nope")

        assert "nope" in str(exc_info.value)
        assert "gemini-cli" in str(exc_info.value)

    def test_test_registration_is_visible(self):
        assert isinstance(ProviderFactory.create("scripted"), ScriptedProvider)

    def test_all_metadata(self):
        names = {m["name"] for m in ProviderFactory.get_all_metadata()}
        assert {"gemini-cli", "claude-code", "scripted"} <= names


class TestRateLimitMessage:

    @pytest.mark.parametrize(
        "message",
        ["HTTP 429", "Rate limit exceeded", "rate_limit_error", "Too Many Requests", "RESOURCE_EXHAUSTED"],
    )
    def test_detected(self, message):
        assert is_rate_limit_message(message)

    def test_other_errors_not_detected(self):
        assert not is_rate_limit_message("connection refused")
