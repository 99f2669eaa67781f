"""Plan wire models.

The plan is the JSON object a model returns for one instruction. File actions
form a discriminated union on the ``action`` tag. Instances are only handed out
by ``PlanValidator`` after every semantic check passed, so downstream code can
rely on the invariants documented on ``Plan``.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PlanKind(str, Enum):
    """Which of the three mutually exclusive plan shapes a plan has."""

    REFUSAL = "refusal"
    CLARIFICATION = "clarification"
    ACTIONABLE = "actionable"


class _FileActionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1)


class CreateFileAction(_FileActionBase):
    action: Literal["create"] = "create"
    content: str = Field(min_length=1)


class ModifyFileAction(_FileActionBase):
    action: Literal["modify"] = "modify"
    content: str = Field(min_length=1)


class RenameFileAction(_FileActionBase):
    action: Literal["rename"] = "rename"
    to: str = Field(min_length=1)


class DeleteFileAction(_FileActionBase):
    action: Literal["delete"] = "delete"


FileAction = Annotated[
    Union[CreateFileAction, ModifyFileAction, RenameFileAction, DeleteFileAction],
    Field(discriminator="action"),
]

WriteAction = CreateFileAction | ModifyFileAction


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    cmd: str = Field(min_length=1)
    risk: RiskLevel


class Plan(BaseModel):
    """Structured output for one instruction.

    Invariant: exactly one of refusal, clarification or actionable holds.
    A refusal carries no intent, files or commands; a clarification carries
    no files or commands.
    """

    model_config = ConfigDict(frozen=True)

    intent: str
    summary: str = Field(min_length=1)
    clarification: str | None = None
    files: list[FileAction]
    commands: list[Command]
    refusal: str | None = None

    @property
    def kind(self) -> PlanKind:
        if self.refusal:
            return PlanKind.REFUSAL
        if self.clarification:
            return PlanKind.CLARIFICATION
        return PlanKind.ACTIONABLE

    @property
    def is_actionable(self) -> bool:
        return self.kind is PlanKind.ACTIONABLE
