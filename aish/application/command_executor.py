"""Safety-gated sequential shell command execution."""

import logging
import re
import subprocess
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

import click

from aish.domain.errors import CommandFailedError, UnsafeCommandError
from aish.domain.models.plan import Command, RiskLevel
from aish.domain.validation.intent import is_chained_command, is_dangerous_command

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

DECLINED = "declined"

_SINGLE_QUOTED = re.compile(r"'([^']*)'")


def normalize_quotes(cmd: str) -> str:
    """Rewrite single-quoted literals as double-quoted ones."""
    return _SINGLE_QUOTED.sub(lambda m: f'"{m.group(1)}"', cmd)


def check_command(cmd: str) -> None:
    """
    Reject chained or dangerous commands.

    Raises:
        UnsafeCommandError: If the command chains or matches a danger pattern
    """
    if is_chained_command(cmd):
        raise UnsafeCommandError(f"Command chaining is blocked: {cmd}")
    if is_dangerous_command(cmd):
        raise UnsafeCommandError(f"Dangerous command blocked: {cmd}")


@dataclass(slots=True)
class CommandResult:
    command: str
    risk: RiskLevel
    executed: bool
    returncode: int | None = None
    skipped_reason: str | None = None


class CommandExecutor:
    """Runs plan commands one at a time through the host shell.

    The first unsafe or failing command aborts the rest of the batch, and so
    does a declined confirmation.
    """

    def __init__(self, working_directory: Path, *, confirm: Confirm) -> None:
        self.working_directory = working_directory
        self._confirm = confirm

    def execute(
        self,
        commands: Iterable[Command],
        *,
        dry_run: bool = False,
        auto_yes: bool = False,
    ) -> list[CommandResult]:
        """
        Execute commands in order.

        Raises:
            UnsafeCommandError: If a command is chained or dangerous
            CommandFailedError: If a command exits non-zero
        """
        results: list[CommandResult] = []
        for command in commands:
            click.echo(
                f"\n{click.style(command.cmd, fg='cyan')} ({click.style(command.risk.value, fg='yellow')})"
            )
            check_command(command.cmd)

            if dry_run:
                click.secho("Dry-run: command not executed.", fg="yellow")
                results.append(CommandResult(command.cmd, command.risk, False, skipped_reason="dry_run"))
                continue

            if command.risk is RiskLevel.HIGH and not auto_yes:
                if not self._confirm("High-risk command. Proceed?"):
                    click.secho("Skipped.", fg="bright_black")
                    results.append(CommandResult(command.cmd, command.risk, False, skipped_reason=DECLINED))
                    logger.info(f"Command declined: {command.cmd}, cancelling remaining commands")
                    break

            returncode = self._run(normalize_quotes(command.cmd))
            if returncode != 0:
                raise CommandFailedError(command.cmd, returncode)
            results.append(CommandResult(command.cmd, command.risk, True, returncode=returncode))
        return results

    def _run(self, cmd: str) -> int:
        logger.debug(f"Running shell command: {cmd}")
        try:
            completed = subprocess.run(cmd, shell=True, cwd=self.working_directory, check=False)
        except OSError as e:
            raise CommandFailedError(cmd, 127) from e
        return completed.returncode
