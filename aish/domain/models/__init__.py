"""Domain models for aish."""

from .plan import (
    Command,
    CreateFileAction,
    DeleteFileAction,
    FileAction,
    ModifyFileAction,
    Plan,
    PlanKind,
    RenameFileAction,
    RiskLevel,
    WriteAction,
)
from .undo import UndoRecord


__all__ = [
    "Command",
    "CreateFileAction",
    "DeleteFileAction",
    "FileAction",
    "ModifyFileAction",
    "Plan",
    "PlanKind",
    "RenameFileAction",
    "RiskLevel",
    "UndoRecord",
    "WriteAction",
]
