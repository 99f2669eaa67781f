"""Multi-turn clarification tracking.

State lives in project memory so it survives between invocations:

- IDLE: no pending question.
- AWAITING_ANSWER: a previous instruction produced a clarification question;
  ``pending_input`` holds that instruction and ``pending_question`` the question.

The next instruction either answers the question (merged into the original
text and regenerated), switches to a tool command domain (pending state is
dropped), or, if the merged plan asks yet another question, gets blocked so
clarifications never stack.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from aish.domain.errors import AmbiguousDeleteError
from aish.domain.models.plan import Plan
from aish.domain.persistence.memory_store import MemoryStore
from aish.domain.validation.intent import (
    has_explicit_extension,
    is_command_domain,
    is_delete_intent,
    looks_like_pure_command,
)

logger = logging.getLogger(__name__)

PENDING_INPUT_KEY = "pending_input"
PENDING_QUESTION_KEY = "pending_question"

_IMPLICIT_TARGET_PATTERN = re.compile(r"\b(it|that file|same file|previous file)\b", re.IGNORECASE)


class ClarificationState(str, Enum):
    IDLE = "idle"
    AWAITING_ANSWER = "awaiting_answer"


class ClarificationOutcome(str, Enum):
    RESOLVED = "resolved"  # Actionable or refusal plan, pending state cleared
    PENDING = "pending"    # Plan asked a question, now awaiting an answer
    BLOCKED = "blocked"    # Second question while answering the first


@dataclass(frozen=True, slots=True)
class ClarificationContext:
    """How an incoming instruction relates to the pending question.

    Attributes:
        instruction: Text to generate from (merged when answering)
        merging: True when the instruction answers a pending question
        pending_question: The question being answered, if any
        reset: True when a pending question was dropped by a domain switch
    """

    instruction: str
    merging: bool = False
    pending_question: str | None = None
    reset: bool = False


class ClarificationStateMachine:
    """Decides how instructions interact with a pending clarification."""

    def __init__(self, memory: MemoryStore) -> None:
        self.memory = memory

    @property
    def pending_input(self) -> str:
        return self.memory.get(PENDING_INPUT_KEY) or ""

    @property
    def pending_question(self) -> str:
        return self.memory.get(PENDING_QUESTION_KEY) or ""

    @property
    def state(self) -> ClarificationState:
        if self.pending_question:
            return ClarificationState.AWAITING_ANSWER
        return ClarificationState.IDLE

    def begin(self, instruction: str) -> ClarificationContext:
        """Classify an incoming instruction against the pending state."""
        if self.state is ClarificationState.IDLE:
            return ClarificationContext(instruction=instruction)

        if is_command_domain(instruction):
            logger.debug("Command-domain instruction, dropping pending clarification")
            self.reset()
            return ClarificationContext(instruction=instruction, reset=True)

        question = self.pending_question
        merged = f"{self.pending_input}. {instruction}" if self.pending_input else instruction
        return ClarificationContext(instruction=merged, merging=True, pending_question=question)

    def resolve_implicit_targets(self, text: str) -> str:
        """Replace "it", "that file", "same file", "previous file" with last_file."""
        last_file = self.memory.get("last_file")
        if not last_file:
            return text
        return _IMPLICIT_TARGET_PATTERN.sub(lambda _: last_file, text)

    def check_delete_target(self, text: str) -> None:
        """
        Block delete instructions that do not name a file.

        Without an extension-like token the only acceptable implicit target is
        a single entry in recent_files.

        Raises:
            AmbiguousDeleteError: If the delete target is ambiguous
        """
        if not is_delete_intent(text) or has_explicit_extension(text):
            return
        recent = self.memory.get_json("recent_files", [])
        if not isinstance(recent, list) or len(recent) != 1:
            raise AmbiguousDeleteError("Delete is ambiguous. Please specify the file explicitly.")

    def handle_plan(self, context: ClarificationContext, plan: Plan) -> ClarificationOutcome:
        """Apply the state transition for a freshly generated plan."""
        merging = context.merging
        if merging and looks_like_pure_command(context.instruction):
            logger.debug("Merged instruction reads as a tool command, dropping pending clarification")
            self.reset()
            merging = False

        if plan.clarification:
            if merging:
                return ClarificationOutcome.BLOCKED
            self.memory.set(PENDING_INPUT_KEY, context.instruction)
            self.memory.set(PENDING_QUESTION_KEY, plan.clarification)
            return ClarificationOutcome.PENDING

        self.reset()
        return ClarificationOutcome.RESOLVED

    def reset(self) -> None:
        self.memory.set(PENDING_INPUT_KEY, "")
        self.memory.set(PENDING_QUESTION_KEY, "")
