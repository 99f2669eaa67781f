"""Applies plan file actions with diff preview, confirmation and undo.

Actions run strictly in order and a declined confirmation ends the batch.
Each mutation records its inverse in the single undo slot (memory key
``last_undo``) only after the mutation succeeded, so a declined or failed
action never overwrites the previous undo entry.
"""

import difflib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

import click

from aish.domain.constants import KNOWN_FILES_LIMIT, RECENT_FILES_LIMIT
from aish.domain.errors import FileActionError, UnknownActionError
from aish.domain.models.plan import (
    CreateFileAction,
    DeleteFileAction,
    ModifyFileAction,
    RenameFileAction,
    WriteAction,
)
from aish.domain.models.undo import UndoRecord
from aish.domain.persistence.memory_store import MemoryStore
from aish.domain.validation.path_validator import PathValidator

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

UNDO_KEY = "last_undo"

# Only content writes may skip the prompt under --yes
AUTO_APPROVABLE_ACTIONS = frozenset({"create", "modify"})


class ApplyStatus(str, Enum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"  # Empty diff, nothing written
    DRY_RUN = "dry_run"
    SKIPPED = "skipped"      # User declined, later actions are not attempted
    MISSING = "missing"      # Delete target absent


@dataclass(slots=True)
class ApplyResult:
    action: str
    path: str
    status: ApplyStatus
    to: str | None = None
    diff: str = ""


def compute_diff(old: str, new: str) -> str:
    """Unified diff between two texts, empty when they are identical."""
    lines = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile="before",
        tofile="after",
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def ensure_trailing_newline(content: str) -> str:
    return content if content.endswith("\n") else content + "\n"


def _style_diff_line(line: str) -> str:
    if line.startswith(("+++", "---")):
        return click.style(line, bold=True)
    if line.startswith("+"):
        return click.style(line, fg="green")
    if line.startswith("-"):
        return click.style(line, fg="red")
    if line.startswith("@@"):
        return click.style(line, fg="cyan")
    return line


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _lexists(path: Path) -> bool:
    # True for dangling symlinks too
    return path.is_symlink() or path.exists()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


class FileActionApplier:
    """Applies create/modify/rename/delete actions inside a project root."""

    def __init__(self, project_root: Path, memory: MemoryStore, *, confirm: Confirm) -> None:
        self.project_root = project_root
        self.memory = memory
        self._confirm = confirm

    @property
    def undo_record(self) -> UndoRecord | None:
        raw = self.memory.get_json(UNDO_KEY, None)
        if not raw:
            return None
        return UndoRecord.model_validate(raw)

    def apply(
        self,
        actions: Iterable[Any],
        *,
        dry_run: bool = False,
        auto_yes: bool = False,
    ) -> list[ApplyResult]:
        """
        Apply actions in order, failing fast on the first error.

        A declined confirmation stops the batch: the SKIPPED result is the last
        one returned and the remaining actions are never looked at.

        Raises:
            UnknownActionError: If an action carries an unrecognized tag
            UnsafePathError: If a path is absolute or escapes the project root
            FileActionError: If the filesystem rejects the action
        """
        results: list[ApplyResult] = []
        for action in actions:
            result = self._dispatch(action, dry_run=dry_run, auto_yes=auto_yes, record_undo=True)
            results.append(result)
            if result.status is ApplyStatus.SKIPPED:
                logger.info(f"File action declined for {result.path}, cancelling remaining actions")
                break
        return results

    def undo(self, *, auto_yes: bool = False) -> ApplyResult | None:
        """Replay and clear the undo slot. Returns None when it is empty."""
        record = self.undo_record
        if record is None:
            return None
        result = self._dispatch(
            record.to_action(),
            dry_run=False,
            auto_yes=auto_yes,
            record_undo=False,
            restore=True,
        )
        if result.status is ApplyStatus.APPLIED:
            self.memory.set_json(UNDO_KEY, None)
        return result

    def _dispatch(
        self,
        action: Any,
        *,
        dry_run: bool,
        auto_yes: bool,
        record_undo: bool,
        restore: bool = False,
    ) -> ApplyResult:
        if isinstance(action, (CreateFileAction, ModifyFileAction)):
            return self._apply_write(action, dry_run, auto_yes, record_undo, restore)
        if isinstance(action, RenameFileAction):
            return self._apply_rename(action, dry_run, record_undo)
        if isinstance(action, DeleteFileAction):
            return self._apply_delete(action, dry_run, record_undo)
        tag = getattr(action, "action", None)
        if tag is None and isinstance(action, dict):
            tag = action.get("action")
        raise UnknownActionError(f"Unknown file action: {tag}")

    def _apply_write(
        self,
        action: WriteAction,
        dry_run: bool,
        auto_yes: bool,
        record_undo: bool,
        restore: bool,
    ) -> ApplyResult:
        target = PathValidator.resolve_in_root(action.path, self.project_root)
        click.echo(f"\n{click.style(action.path, fg='cyan')} ({click.style(action.action, fg='yellow')})")

        existed = target.exists()
        old_content = self._read(target) if existed else ""
        # Undo restores bytes verbatim; plan content is newline-normalized
        new_content = action.content if restore else ensure_trailing_newline(action.content)

        diff = compute_diff(old_content, new_content)
        if not diff and existed:
            click.secho("No changes detected.", fg="bright_black")
            return ApplyResult(action.action, action.path, ApplyStatus.UNCHANGED)

        for line in diff.splitlines():
            click.echo(_style_diff_line(line))

        if dry_run:
            click.secho("Dry-run: change not applied.", fg="yellow")
            return ApplyResult(action.action, action.path, ApplyStatus.DRY_RUN, diff=diff)

        if not (auto_yes and action.action in AUTO_APPROVABLE_ACTIONS):
            if not self._confirm("Apply this change?"):
                click.secho("Skipped.", fg="bright_black")
                return ApplyResult(action.action, action.path, ApplyStatus.SKIPPED, diff=diff)

        if existed:
            inverse = UndoRecord(action="modify", path=action.path, previous_content=old_content)
        else:
            inverse = UndoRecord(action="delete", path=action.path)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            _write_text(target, new_content)
        except OSError as e:
            raise FileActionError(f"Failed to write {action.path}: {e}") from e

        click.secho("Applied.", fg="green")
        if record_undo:
            self._record_undo(inverse)
        self._remember_path(action.path, action.action)
        return ApplyResult(action.action, action.path, ApplyStatus.APPLIED, diff=diff)

    def _apply_rename(self, action: RenameFileAction, dry_run: bool, record_undo: bool) -> ApplyResult:
        source = self._entry_path(action.path)
        destination = self._entry_path(action.to)
        click.echo(
            f"\n{click.style(action.path, fg='cyan')} -> {click.style(action.to, fg='cyan')} "
            f"({click.style('rename', fg='yellow')})"
        )

        if not _lexists(source):
            raise FileActionError(f"Source file does not exist: {action.path}")
        if _lexists(destination):
            raise FileActionError(f"Target file already exists: {action.to}")

        if dry_run:
            click.secho("Dry-run: rename not applied.", fg="yellow")
            return ApplyResult("rename", action.path, ApplyStatus.DRY_RUN, to=action.to)

        if not self._confirm("Apply this rename?"):
            click.secho("Skipped.", fg="bright_black")
            return ApplyResult("rename", action.path, ApplyStatus.SKIPPED, to=action.to)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            source.rename(destination)
        except OSError as e:
            raise FileActionError(f"Failed to rename {action.path} to {action.to}: {e}") from e

        click.secho("Renamed.", fg="green")
        if record_undo:
            self._record_undo(UndoRecord(action="rename", path=action.to, to=action.path))
        self._forget_path(action.path)
        self._remember_path(action.to, "rename")
        return ApplyResult("rename", action.path, ApplyStatus.APPLIED, to=action.to)

    def _apply_delete(self, action: DeleteFileAction, dry_run: bool, record_undo: bool) -> ApplyResult:
        target = self._entry_path(action.path)
        click.echo(f"\n{click.style(action.path, fg='cyan')} ({click.style('delete', fg='red')})")

        if not _lexists(target):
            click.secho("File does not exist. Skipped.", fg="bright_black")
            return ApplyResult("delete", action.path, ApplyStatus.MISSING)

        if dry_run:
            click.secho("Dry-run: delete not applied.", fg="yellow")
            return ApplyResult("delete", action.path, ApplyStatus.DRY_RUN)

        if not self._confirm("Delete this file?"):
            click.secho("Skipped.", fg="bright_black")
            return ApplyResult("delete", action.path, ApplyStatus.SKIPPED)

        snapshot = self._read(target)
        try:
            target.unlink()
        except OSError as e:
            raise FileActionError(f"Failed to delete {action.path}: {e}") from e

        click.secho("Deleted.", fg="green")
        if record_undo:
            self._record_undo(UndoRecord(action="create", path=action.path, previous_content=snapshot))
        self._forget_path(action.path)
        self.memory.set("last_action", "delete")
        return ApplyResult("delete", action.path, ApplyStatus.APPLIED)

    def _entry_path(self, path: str) -> Path:
        """Directory-entry path for rename/delete.

        Containment is checked on the resolved path, but the returned path is
        unresolved so a symlink itself is renamed or unlinked, not its target.
        """
        PathValidator.resolve_in_root(path, self.project_root)
        return self.project_root / path

    def _read(self, target: Path) -> str:
        try:
            return _read_text(target)
        except (OSError, UnicodeDecodeError) as e:
            raise FileActionError(f"Failed to read {target}: {e}") from e

    def _record_undo(self, record: UndoRecord) -> None:
        logger.debug(f"Recording undo: {record.action} {record.path}")
        self.memory.set_json(UNDO_KEY, record.model_dump())

    def _remember_path(self, path: str, action_name: str) -> None:
        directory = PurePosixPath(path.replace("\\", "/")).parent.as_posix()

        dirs = self.memory.get_json("known_dirs", {})
        if not isinstance(dirs, dict):
            dirs = {}
        dirs[directory] = int(dirs.get(directory, 0)) + 1
        self.memory.set_json("known_dirs", dirs)

        known = self.memory.get_json("known_files", [])
        if not isinstance(known, list):
            known = []
        if path not in known:
            self.memory.set_json("known_files", (known + [path])[-KNOWN_FILES_LIMIT:])

        recent = self.memory.get_json("recent_files", [])
        if not isinstance(recent, list):
            recent = []
        updated = [path] + [f for f in recent if f != path]
        self.memory.set_json("recent_files", updated[:RECENT_FILES_LIMIT])

        self.memory.set("last_file", path)
        self.memory.set("last_action", action_name)

    def _forget_path(self, path: str) -> None:
        for key in ("known_files", "recent_files"):
            entries = self.memory.get_json(key, [])
            if isinstance(entries, list):
                self.memory.set_json(key, [f for f in entries if f != path])
        if self.memory.get("last_file") == path:
            self.memory.set("last_file", "")
