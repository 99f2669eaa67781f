"""Per-invocation engine driving one instruction through the plan lifecycle.

Control flow:
    instruction -> clarification merge/reset -> implicit target resolution
    -> delete guard -> plan generation -> clarification transition
    -> file actions -> commands -> memory facts

Everything stateful (memo cache, provider handle, undo slot access) hangs off
the engine instance; nothing is kept at module level.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

import click

from aish.application.clarification import ClarificationOutcome, ClarificationStateMachine
from aish.application.command_executor import DECLINED, CommandExecutor, CommandResult
from aish.application.config_models import AppConfig, GenerationConfig
from aish.application.file_applier import ApplyResult, ApplyStatus, FileActionApplier
from aish.application.memory_extractor import extract_facts
from aish.application.plan_generator import PlanGenerator, Sleep
from aish.application.project_scanner import scan_project
from aish.domain.constants import KNOWN_FILES_LIMIT, UNDO_INSTRUCTION
from aish.domain.errors import AmbiguousDeleteError
from aish.domain.models.plan import Plan, PlanKind
from aish.domain.persistence.memory_store import MemoryStore
from aish.domain.providers import ProviderFactory
from aish.domain.providers.response_provider import ResponseProvider

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


class RunStatus(str, Enum):
    APPLIED = "applied"
    CLARIFICATION = "clarification"      # Plan asked a question, pending state stored
    BLOCKED = "blocked"                  # Nested clarification refused
    REFUSED = "refused"
    AMBIGUOUS = "ambiguous"              # Delete target unclear, nothing generated
    CANCELLED = "cancelled"              # User declined a confirmation, rest of the queue dropped
    UNDONE = "undone"
    UNDO_SKIPPED = "undo_skipped"
    NOTHING_TO_UNDO = "nothing_to_undo"


@dataclass(slots=True)
class RunOutcome:
    status: RunStatus
    plan: Plan | None = None
    message: str | None = None
    file_results: list[ApplyResult] = field(default_factory=list)
    command_results: list[CommandResult] = field(default_factory=list)


class AgentEngine:
    """Owns the collaborators for one invocation and runs one instruction."""

    def __init__(
        self,
        *,
        project_root: Path,
        memory: MemoryStore,
        provider: ResponseProvider,
        confirm: Confirm,
        generation: GenerationConfig | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        generation = generation or GenerationConfig()
        self.project_root = project_root
        self.memory = memory
        self.provider = provider
        self.generator = PlanGenerator(
            provider,
            max_attempts=generation.max_attempts,
            backoff_seconds=generation.backoff_seconds,
            rate_limit_wait_seconds=generation.rate_limit_wait_seconds,
            sleep=sleep,
        )
        self.clarifications = ClarificationStateMachine(memory)
        self.applier = FileActionApplier(project_root, memory, confirm=confirm)
        self.executor = CommandExecutor(project_root, confirm=confirm)
        self._provider_validated = False

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        project_root: Path,
        confirm: Confirm,
        memory: MemoryStore | None = None,
    ) -> "AgentEngine":
        """
        Build an engine with the configured provider.

        Raises:
            KeyError: If the configured provider is not registered
        """
        provider = ProviderFactory.create(config.provider, config.provider_config())
        return cls(
            project_root=project_root,
            memory=memory or MemoryStore(project_root, config.memory_dir),
            provider=provider,
            confirm=confirm,
            generation=config.generation,
        )

    def run(self, instruction: str, *, dry_run: bool = False, auto_yes: bool = False) -> RunOutcome:
        """
        Drive one instruction to completion.

        A "no" at any confirmation prompt ends the run with CANCELLED: later
        file actions and commands are not attempted and no facts are stored.

        Raises:
            PlanGenerationError: If no valid plan could be generated
            ProviderError: If the provider is unusable
            UnsafePathError, FileActionError, UnknownActionError: From file actions
            UnsafeCommandError, CommandFailedError: From commands
        """
        if instruction.strip() == UNDO_INSTRUCTION:
            return self.undo(auto_yes=auto_yes)

        self.memory.set("project_root", str(self.project_root))
        self._ensure_scanned()

        context = self.clarifications.begin(instruction)
        text = self.clarifications.resolve_implicit_targets(context.instruction)
        context = replace(context, instruction=text)

        try:
            self.clarifications.check_delete_target(text)
        except AmbiguousDeleteError as e:
            return RunOutcome(RunStatus.AMBIGUOUS, message=str(e))

        self._ensure_provider_ready()
        plan = self.generator.generate(text, self.memory.all())

        transition = self.clarifications.handle_plan(context, plan)
        if transition is ClarificationOutcome.BLOCKED:
            return RunOutcome(RunStatus.BLOCKED, plan=plan, message=context.pending_question)
        if transition is ClarificationOutcome.PENDING:
            return RunOutcome(RunStatus.CLARIFICATION, plan=plan, message=plan.clarification)
        if plan.kind is PlanKind.REFUSAL:
            return RunOutcome(RunStatus.REFUSED, plan=plan, message=plan.refusal)

        click.secho(plan.summary, bold=True)
        outcome = RunOutcome(RunStatus.APPLIED, plan=plan, message=plan.summary)
        if plan.files:
            outcome.file_results = self.applier.apply(plan.files, dry_run=dry_run, auto_yes=auto_yes)
            if any(r.status is ApplyStatus.SKIPPED for r in outcome.file_results):
                return self._cancelled(outcome)
        if plan.commands:
            outcome.command_results = self.executor.execute(
                plan.commands, dry_run=dry_run, auto_yes=auto_yes
            )
            if any(r.skipped_reason == DECLINED for r in outcome.command_results):
                return self._cancelled(outcome)

        if not dry_run:
            self._persist_facts(plan)
        return outcome

    def undo(self, *, auto_yes: bool = False) -> RunOutcome:
        result = self.applier.undo(auto_yes=auto_yes)
        if result is None:
            return RunOutcome(RunStatus.NOTHING_TO_UNDO, message="Nothing to undo.")
        if result.status is ApplyStatus.APPLIED:
            return RunOutcome(RunStatus.UNDONE, message="Undo applied.", file_results=[result])
        return RunOutcome(RunStatus.UNDO_SKIPPED, message="Undo not applied.", file_results=[result])

    @staticmethod
    def _cancelled(outcome: RunOutcome) -> RunOutcome:
        # Nothing after a declined prompt runs, facts included
        outcome.status = RunStatus.CANCELLED
        outcome.message = "Cancelled. Remaining actions were not applied."
        return outcome

    def _ensure_provider_ready(self) -> None:
        if not self._provider_validated:
            self.provider.validate()
            self._provider_validated = True

    def _ensure_scanned(self) -> None:
        if self.memory.has_scanned():
            return
        scan = scan_project(self.project_root)
        self.memory.set_json("known_dirs", scan.known_dirs)
        self.memory.set_json("known_files", scan.known_files[-KNOWN_FILES_LIMIT:])
        self.memory.mark_scanned()
        logger.debug(f"Scanned project: {len(scan.known_files)} files in {len(scan.known_dirs)} dirs")

    def _persist_facts(self, plan: Plan) -> None:
        # Existing facts win over freshly inferred ones
        for key, value in extract_facts(plan).items():
            if not self.memory.get(key):
                self.memory.set(key, value)
