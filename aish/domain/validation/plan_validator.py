"""Structural and semantic acceptance of model-produced plans."""

import logging
from typing import Any

from pydantic import ValidationError

from aish.domain.errors import PlanValidationError
from aish.domain.models.plan import Plan, RenameFileAction
from aish.domain.validation.intent import (
    IntentClass,
    is_blocklisted_command,
    is_filesystem_command,
    is_generator_command,
    normalize_intent,
)
from aish.domain.validation.path_validator import PathValidator

logger = logging.getLogger(__name__)


class PlanValidator:
    """Turns a raw JSON object into a ``Plan`` or reports every violation.

    Structural failures (wrong shape, unknown ``action`` tag) short-circuit
    since nothing else can be checked. Semantic checks all run and their
    messages are collected together.
    """

    @classmethod
    def validate(cls, raw: Any) -> Plan:
        """Validate a decoded JSON value.

        Returns:
            The accepted Plan

        Raises:
            PlanValidationError: With the full list of violations
        """
        if not isinstance(raw, dict):
            raise PlanValidationError(["Plan must be a JSON object"])

        try:
            plan = Plan.model_validate(raw)
        except ValidationError as e:
            raise PlanValidationError(_format_structural_errors(e)) from e

        errors = cls.semantic_errors(plan)
        if errors:
            logger.debug(f"Plan rejected with {len(errors)} violation(s): {errors}")
            raise PlanValidationError(errors)
        return plan

    @classmethod
    def semantic_errors(cls, plan: Plan) -> list[str]:
        errors: list[str] = []

        if plan.refusal:
            if plan.files or plan.commands or plan.intent.strip():
                errors.append("Refusal plans must not include intent, files, or commands")
            if plan.clarification:
                errors.append("Refusal plans must not include a clarification")
            return errors

        if not plan.intent.strip():
            errors.append("Intent is required unless the plan is a refusal")

        if plan.clarification and (plan.files or plan.commands):
            errors.append("Clarification plans must not include files or commands")

        intent = normalize_intent(plan.intent)
        if (
            intent is IntentClass.CREATE
            and not plan.files
            and not plan.commands
            and not plan.clarification
        ):
            errors.append("Create intent without files or commands")

        if plan.files and any(is_generator_command(c.cmd) for c in plan.commands):
            errors.append(
                "Plan cannot include both project generator commands and explicit "
                "file creation. Choose one."
            )

        for action in plan.files:
            problem = PathValidator.check_plan_path(action.path)
            if problem:
                errors.append(problem)
            if isinstance(action, RenameFileAction):
                problem = PathValidator.check_plan_path(action.to)
                if problem:
                    errors.append(problem)

        for command in plan.commands:
            if is_blocklisted_command(command.cmd):
                errors.append(f"Dangerous command blocked: {command.cmd}")

        for command in plan.commands:
            if is_filesystem_command(command.cmd):
                errors.append(
                    "Filesystem operations must use file actions, not shell commands: "
                    f"{command.cmd}"
                )

        return errors


def _format_structural_errors(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def validate_plan(raw: Any) -> Plan:
    """Validate a raw plan - convenience wrapper."""
    return PlanValidator.validate(raw)
