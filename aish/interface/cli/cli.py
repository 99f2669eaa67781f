import click
import logging
from pathlib import Path
from pydantic import BaseModel

from aish.application.agent_engine import AgentEngine, RunOutcome, RunStatus
from aish.application.config_loader import load_config
from aish.domain.persistence.memory_store import MemoryStore, find_project_root
from aish.interface.cli.output_models import (
    CommandResultSummary,
    FileResultSummary,
    MemoryOutput,
    ProviderSummary,
    ProvidersOutput,
    RunOutput,
)

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "run"

# Group-level flags that may precede an implicit instruction.
_GROUP_FLAGS = frozenset({"--json", "-v", "--verbose", "--help"})


class DefaultCommandGroup(click.Group):
    """Group that routes a bare instruction (`aish add a button`) to `run`."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        for i, arg in enumerate(args):
            if arg in _GROUP_FLAGS:
                continue
            if arg not in self.commands:
                args.insert(i, DEFAULT_COMMAND)
            break
        return super().parse_args(ctx, args)


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields (e.g., RunOutput.intent on error).
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _format_error(e: Exception) -> str:
    """Format exception into user-friendly message."""
    if isinstance(e, FileNotFoundError):
        return f"File not found: {e.filename}" if e.filename else str(e)
    if isinstance(e, KeyError):
        return str(e.args[0]) if e.args else str(e)
    return str(e)


def _confirm(message: str) -> bool:
    return click.confirm(message, default=False)


def _project_root() -> Path:
    return find_project_root()


def _run_output(outcome: RunOutcome, dry_run: bool) -> RunOutput:
    plan = outcome.plan
    return RunOutput(
        exit_code=0,
        status=outcome.status.value,
        intent=plan.intent if plan else None,
        summary=plan.summary if plan else None,
        message=outcome.message,
        dry_run=dry_run,
        files=[
            FileResultSummary(action=r.action, path=r.path, status=r.status.value, to=r.to)
            for r in outcome.file_results
        ],
        commands=[
            CommandResultSummary(
                command=r.command,
                risk=r.risk.value,
                executed=r.executed,
                returncode=r.returncode,
                skipped_reason=r.skipped_reason,
            )
            for r in outcome.command_results
        ],
    )


def _echo_outcome(outcome: RunOutcome) -> None:
    if outcome.status is RunStatus.CLARIFICATION:
        click.secho(f"? {outcome.message}", fg="yellow")
    elif outcome.status is RunStatus.BLOCKED:
        click.secho(f"Still waiting for an answer to: {outcome.message}", fg="yellow")
    elif outcome.status is RunStatus.REFUSED:
        click.secho(f"Refused: {outcome.message}", fg="red")
    elif outcome.status is RunStatus.AMBIGUOUS:
        click.secho(outcome.message, fg="yellow")
    elif outcome.status is RunStatus.CANCELLED:
        click.secho(outcome.message, fg="yellow")
    elif outcome.status is RunStatus.APPLIED:
        click.secho("Done.", fg="green")
    else:
        click.echo(outcome.message)


@click.group(cls=DefaultCommandGroup, help="Natural-language project assistant.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, verbose: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )


@cli.command("run")
@click.argument("instruction", nargs=-1, required=True)
@click.option("--dry-run", "dry_run", is_flag=True, help="Show diffs and commands without applying them.")
@click.option("--yes", "-y", "yes", is_flag=True, help="Auto-approve file writes and high-risk commands.")
@click.pass_context
def run_cmd(ctx: click.Context, instruction: tuple[str, ...], dry_run: bool, yes: bool) -> None:
    """Plan and apply an instruction. `undo` reverts the last file action."""
    text = " ".join(instruction).strip()
    try:
        if not text:
            raise click.UsageError("Instruction must not be empty")

        project_root = _project_root()
        config = load_config(project_root=project_root)
        engine = AgentEngine.from_config(config, project_root=project_root, confirm=_confirm)
        logger.debug(f"Running instruction with provider '{config.provider}' in {project_root}")

        outcome = engine.run(text, dry_run=dry_run, auto_yes=yes)

        if _get_json_mode(ctx):
            _json_emit(_run_output(outcome, dry_run))
            raise click.exceptions.Exit(0)

        _echo_outcome(outcome)

    except (click.exceptions.Exit, click.Abort, click.UsageError):
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(RunOutput(exit_code=1, dry_run=dry_run, error=_format_error(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(_format_error(e)) from e


@cli.group("memory")
def memory_group() -> None:
    """Inspect or reset the project memory."""


def _open_memory() -> MemoryStore:
    project_root = _project_root()
    config = load_config(project_root=project_root)
    return MemoryStore(project_root, config.memory_dir)


@memory_group.command("list")
@click.pass_context
def memory_list_cmd(ctx: click.Context) -> None:
    """Show every remembered fact."""
    try:
        store = _open_memory()
        entries = store.all()

        if _get_json_mode(ctx):
            _json_emit(
                MemoryOutput(
                    exit_code=0,
                    action="list",
                    entries=entries,
                    memory_path=str(store.memory_file),
                )
            )
            raise click.exceptions.Exit(0)

        if not entries:
            click.echo("Memory is empty.")
        for key in sorted(entries):
            click.echo(f"{key}={entries[key]}")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(MemoryOutput(exit_code=1, action="list", error=_format_error(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(_format_error(e)) from e


@memory_group.command("clear")
@click.pass_context
def memory_clear_cmd(ctx: click.Context) -> None:
    """Forget everything, including pending clarifications and the undo slot."""
    try:
        store = _open_memory()
        store.clear()

        if _get_json_mode(ctx):
            _json_emit(MemoryOutput(exit_code=0, action="clear", memory_path=str(store.memory_file)))
            raise click.exceptions.Exit(0)

        click.echo("Memory cleared.")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(MemoryOutput(exit_code=1, action="clear", error=_format_error(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(_format_error(e)) from e


@cli.command("providers")
@click.pass_context
def providers_cmd(ctx: click.Context) -> None:
    """List available model providers."""
    try:
        from aish.domain.providers import ProviderFactory

        default_provider = load_config(project_root=_project_root()).provider
        providers_list = [
            ProviderSummary(
                name=m["name"],
                description=m["description"],
                requires_config=m.get("requires_config", False),
                config_keys=m.get("config_keys", []),
            )
            for m in ProviderFactory.get_all_metadata()
        ]

        if _get_json_mode(ctx):
            _json_emit(
                ProvidersOutput(
                    exit_code=0,
                    providers=providers_list,
                    default_provider=default_provider,
                )
            )
            raise click.exceptions.Exit(0)

        if not providers_list:
            click.echo("No providers registered.")
        else:
            click.echo(f"{'PROVIDER':<14}{'DESCRIPTION':<40}{'DEFAULT'}")
            for p in providers_list:
                marker = "*" if p.name == default_provider else ""
                click.echo(f"{p.name:<14}{p.description:<40}{marker}")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(ProvidersOutput(exit_code=1, error=_format_error(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(_format_error(e)) from e


def main() -> None:
    cli()
