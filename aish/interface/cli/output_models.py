from typing import Literal
from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: Literal["run", "memory", "providers"]
    exit_code: int
    error: str | None = None


class FileResultSummary(BaseModel):
    """Outcome of a single file action."""
    action: str
    path: str
    status: str
    to: str | None = None


class CommandResultSummary(BaseModel):
    """Outcome of a single shell command."""
    command: str
    risk: str
    executed: bool
    returncode: int | None = None
    skipped_reason: str | None = None


class RunOutput(BaseOutput):
    command: Literal["run"] = "run"
    # On early errors no plan exists; omit plan fields from JSON via exclude_none.
    status: str | None = None
    intent: str | None = None
    summary: str | None = None
    message: str | None = None
    dry_run: bool = False
    files: list[FileResultSummary] = Field(default_factory=list)
    commands: list[CommandResultSummary] = Field(default_factory=list)


class MemoryOutput(BaseOutput):
    command: Literal["memory"] = "memory"
    action: Literal["list", "clear"]
    entries: dict[str, str] | None = None
    memory_path: str | None = None


class ProviderSummary(BaseModel):
    """Summary of a provider for list output."""
    name: str
    description: str
    requires_config: bool = False
    config_keys: list[str] = Field(default_factory=list)


class ProvidersOutput(BaseOutput):
    command: Literal["providers"] = "providers"
    providers: list[ProviderSummary] = Field(default_factory=list)
    default_provider: str | None = None
