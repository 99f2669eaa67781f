"""Tests for PlanGenerator: extraction, retries, feedback and caching."""

import pytest

from aish.application.plan_generator import (
    AttemptState,
    PlanGenerator,
    extract_json_object,
    filter_memory_for_planning,
    next_attempt_state,
    parse_plan_response,
    plan_cache_key,
)
from aish.application.prompt_builder import SYSTEM_PROMPT
from aish.domain.errors import (
    ExtractionError,
    PlanGenerationError,
    PlanValidationError,
    ProviderError,
    RateLimitError,
)
from tests.fakes.scripted_provider import ScriptedProvider, plan_json


def _generator(*script, max_attempts=3, sleeps=None):
    provider = ScriptedProvider(script=list(script))
    recorded = [] if sleeps is None else sleeps
    generator = PlanGenerator(
        provider,
        max_attempts=max_attempts,
        backoff_seconds=0.5,
        rate_limit_wait_seconds=60,
        sleep=recorded.append,
    )
    return generator, provider, recorded


class TestExtractJsonObject:

    def test_extracts_object_from_prose(self):
        text = 'Sure! Here is the plan:\n```json\n{"a": 1}\n```\nThanks'
        assert extract_json_object(text) == '{"a": 1}'

    def test_braces_inside_strings_ignored(self):
        text = '{"content": "function f() { return \\"}\\"; }"} trailing {"b": 2}'
        assert extract_json_object(text) == '{"content": "function f() { return \\"}\\"; }"}'

    def test_first_object_wins(self):
        assert extract_json_object('{"a": 1} {"b": 2}') == '{"a": 1}'

    @pytest.mark.parametrize("text", ["", "no json here", '{"unterminated": 1'])
    def test_missing_object_raises(self, text):
        with pytest.raises(ExtractionError, match="Model did not return valid JSON"):
            extract_json_object(text)

    def test_malformed_json_raises_extraction_error(self):
        with pytest.raises(ExtractionError, match="malformed JSON"):
            parse_plan_response("{'single': 'quotes'}")


class TestMemoryFiltering:

    def test_only_allow_listed_keys_in_order(self):
        memory = {
            "framework": "react",
            "pending_question": "Which?",
            "known_dirs": "{}",
            "last_undo": "{}",
            "last_file": "src/a.js",
        }

        filtered = filter_memory_for_planning(memory)

        assert list(filtered) == ["known_dirs", "last_file", "framework"]

    def test_cache_key_ignores_insertion_order(self):
        assert plan_cache_key("x", {"a": "1", "b": "2"}) == plan_cache_key("x", {"b": "2", "a": "1"})

    def test_cache_key_depends_on_instruction(self):
        assert plan_cache_key("x", {}) != plan_cache_key("y", {})


class TestAttemptFold:

    def test_validation_error_replaces_feedback(self):
        error = PlanValidationError(["bad"])
        state = next_attempt_state(AttemptState(feedback="old"), error)

        assert state.feedback == "bad"
        assert state.last_error is error

    def test_provider_error_keeps_feedback(self):
        error = ProviderError("down")
        state = next_attempt_state(AttemptState(feedback="old"), error)

        assert state.feedback == "old"
        assert state.last_error is error


class TestGenerate:

    def test_first_attempt_success(self):
        generator, provider, sleeps = _generator(plan_json())

        plan = generator.generate("create src/a.js", {})

        assert plan.files[0].path == "src/a.js"
        assert len(provider.calls) == 1
        assert sleeps == []

    def test_sends_system_prompt_and_memory(self):
        generator, provider, _ = _generator(plan_json())

        generator.generate("create a file", {"framework": "react", "pending_input": "hidden"})

        prompt, system_prompt = provider.calls[0]
        assert system_prompt == SYSTEM_PROMPT
        assert "- framework: react" in prompt
        assert "hidden" not in prompt
        assert prompt.rstrip().endswith("User input:\ncreate a file")

    def test_validation_feedback_reaches_next_prompt(self):
        bad = plan_json(files=[{"action": "create", "path": "../x", "content": "x"}])
        generator, provider, sleeps = _generator(bad, plan_json())

        generator.generate("create x", {})

        second_prompt = provider.calls[1][0]
        assert second_prompt.startswith("VALIDATION ERROR:\nUnsafe file path: ../x")
        assert "VALIDATION ERROR" not in provider.calls[0][0]
        assert sleeps == [0.5]

    def test_backoff_grows_with_attempt(self):
        generator, _, sleeps = _generator("nope", "still nope", plan_json())

        generator.generate("create x", {})

        assert sleeps == [0.5, 1.0]

    def test_provider_error_keeps_previous_feedback(self):
        bad = plan_json(summary="")
        generator, provider, _ = _generator(bad, ProviderError("flaky"), plan_json())

        generator.generate("create x", {})

        assert provider.calls[1][0] == provider.calls[2][0]
        assert provider.calls[2][0].startswith("VALIDATION ERROR:")

    def test_rate_limit_waits_fixed_interval(self):
        generator, _, sleeps = _generator(RateLimitError("429"), plan_json())

        generator.generate("create x", {})

        assert sleeps == [60]

    def test_exhaustion_raises_with_last_error(self):
        generator, provider, sleeps = _generator("a", "b", ProviderError("down"))

        with pytest.raises(PlanGenerationError) as exc_info:
            generator.generate("create x", {})

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, ProviderError)
        assert len(provider.calls) == 3
        # No wait after the final attempt
        assert sleeps == [0.5, 1.0]

    def test_single_attempt_never_sleeps(self):
        generator, _, sleeps = _generator("garbage", max_attempts=1)

        with pytest.raises(PlanGenerationError):
            generator.generate("create x", {})

        assert sleeps == []

    def test_cache_returns_identical_plan(self):
        generator, provider, _ = _generator(plan_json())

        first = generator.generate("create x", {"framework": "react"})
        second = generator.generate("create x", {"framework": "react", "pending_input": "ignored"})

        assert first is second
        assert len(provider.calls) == 1
        assert generator.cache_size == 1

    def test_different_memory_misses_cache(self):
        generator, provider, _ = _generator(plan_json(), plan_json())

        generator.generate("create x", {"framework": "react"})
        generator.generate("create x", {"framework": "vue"})

        assert len(provider.calls) == 2

    def test_failures_are_not_cached(self):
        generator, provider, _ = _generator("bad", plan_json(), max_attempts=1)

        with pytest.raises(PlanGenerationError):
            generator.generate("create x", {})
        generator.generate("create x", {})

        assert len(provider.calls) == 2

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            PlanGenerator(ScriptedProvider(), max_attempts=0)
