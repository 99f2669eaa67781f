"""Plan generation with validation feedback and retries.

One ``PlanGenerator`` is built per engine. It owns the memo cache, so the
cache lives exactly as long as the engine that created it.
"""

import hashlib
import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from aish.application.prompt_builder import SYSTEM_PROMPT, PlanPromptBuilder
from aish.domain.constants import (
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RATE_LIMIT_WAIT_SECONDS,
    PLANNING_MEMORY_KEYS,
)
from aish.domain.errors import (
    AishError,
    ExtractionError,
    PlanGenerationError,
    PlanValidationError,
    RateLimitError,
)
from aish.domain.models.plan import Plan
from aish.domain.providers.response_provider import ResponseProvider
from aish.domain.validation.plan_validator import PlanValidator

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]


def filter_memory_for_planning(memory: Mapping[str, str]) -> dict[str, str]:
    """Keep only the facts the generator is allowed to see, in allow-list order."""
    return {key: memory[key] for key in PLANNING_MEMORY_KEYS if key in memory}


def plan_cache_key(instruction: str, filtered_memory: Mapping[str, str]) -> str:
    payload = json.dumps(
        {"instruction": instruction, "memory": dict(filtered_memory)},
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def extract_json_object(text: str) -> str:
    """
    Return the first balanced ``{...}`` span in text.

    Braces inside JSON string literals are skipped.

    Raises:
        ExtractionError: If no balanced object is present
    """
    start = text.find("{")
    if start == -1:
        raise ExtractionError("Model did not return valid JSON")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise ExtractionError("Model did not return valid JSON")


def parse_plan_response(raw: str) -> Plan:
    """
    Extract, decode and validate a plan from raw model text.

    Raises:
        ExtractionError: If no JSON object can be decoded
        PlanValidationError: If the object is not an acceptable plan
    """
    candidate = extract_json_object(raw)
    try:
        decoded: Any = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model returned malformed JSON: {e}") from e
    return PlanValidator.validate(decoded)


@dataclass(frozen=True, slots=True)
class AttemptState:
    """Loop state threaded from one attempt to the next."""

    feedback: str | None = None
    last_error: Exception | None = None


def next_attempt_state(state: AttemptState, error: AishError) -> AttemptState:
    """Fold a failed attempt into the loop state.

    Validation and extraction failures become feedback for the next prompt;
    provider failures keep the previous feedback.
    """
    if isinstance(error, (PlanValidationError, ExtractionError)):
        return AttemptState(feedback=str(error), last_error=error)
    return AttemptState(feedback=state.feedback, last_error=error)


class PlanGenerator:
    """Turns an instruction plus memory into a validated Plan."""

    def __init__(
        self,
        provider: ResponseProvider,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        rate_limit_wait_seconds: float = DEFAULT_RATE_LIMIT_WAIT_SECONDS,
        sleep: Sleep = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.provider = provider
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.rate_limit_wait_seconds = rate_limit_wait_seconds
        self._sleep = sleep
        self._cache: dict[str, Plan] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def generate(self, instruction: str, memory: Mapping[str, str]) -> Plan:
        """
        Generate a validated plan, reusing the cached one for identical inputs.

        Raises:
            PlanGenerationError: After max_attempts failed attempts
        """
        filtered = filter_memory_for_planning(memory)
        key = plan_cache_key(instruction, filtered)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Plan cache hit")
            return cached

        state = AttemptState()
        for attempt in range(1, self.max_attempts + 1):
            try:
                plan = self._attempt(instruction, filtered, state.feedback)
            except AishError as e:
                state = next_attempt_state(state, e)
                logger.warning(f"Attempt {attempt} failed: {e}")
                if attempt < self.max_attempts:
                    self._wait_before_retry(attempt, e)
                continue

            self._cache[key] = plan
            return plan

        raise PlanGenerationError(
            f"Plan generation failed after {self.max_attempts} attempts: {state.last_error}",
            attempts=self.max_attempts,
            last_error=state.last_error,
        ) from state.last_error

    def _attempt(self, instruction: str, memory: Mapping[str, str], feedback: str | None) -> Plan:
        prompt = (
            PlanPromptBuilder()
            .with_feedback(feedback)
            .with_memory(memory)
            .with_instruction(instruction)
            .build()
        )
        logger.debug(f"Calling provider {type(self.provider).__name__}")
        raw = self.provider.generate(prompt, system_prompt=SYSTEM_PROMPT)
        return parse_plan_response(raw or "")

    def _wait_before_retry(self, attempt: int, error: AishError) -> None:
        if isinstance(error, RateLimitError):
            logger.warning(f"Rate limited. Waiting {self.rate_limit_wait_seconds:g}s before retry...")
            self._sleep(self.rate_limit_wait_seconds)
            return
        self._sleep(self.backoff_seconds * attempt)
