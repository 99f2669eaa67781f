from typing import Literal

from pydantic import BaseModel, ConfigDict

from aish.domain.models.plan import (
    CreateFileAction,
    DeleteFileAction,
    ModifyFileAction,
    RenameFileAction,
)


class UndoRecord(BaseModel):
    """The single most recent inverse file operation.

    ``action`` is the operation that reverses the last mutation, not the
    mutation itself: undoing a delete is a ``create`` with the snapshotted
    content, undoing a rename is the reverse rename.
    """

    model_config = ConfigDict(extra="forbid")

    action: Literal["create", "modify", "rename", "delete"]
    path: str
    to: str | None = None
    previous_content: str | None = None

    def to_action(self) -> CreateFileAction | ModifyFileAction | RenameFileAction | DeleteFileAction:
        """Build the file action that replays this record.

        Restored content is engine-produced and may legitimately be empty, so
        write actions are constructed without the non-empty content check.
        """
        content = self.previous_content or ""
        if self.action == "create":
            return CreateFileAction.model_construct(path=self.path, content=content, action="create")
        if self.action == "modify":
            return ModifyFileAction.model_construct(path=self.path, content=content, action="modify")
        if self.action == "rename":
            if not self.to:
                raise ValueError("rename undo record requires 'to'")
            return RenameFileAction(path=self.path, to=self.to)
        return DeleteFileAction(path=self.path)
