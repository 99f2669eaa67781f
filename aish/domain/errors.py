"""Domain-level exceptions for aish."""


class AishError(Exception):
    """Base class for every error aish raises on purpose."""

    pass


class ProviderError(AishError):
    """Raised when a provider fails (network, auth, timeout, etc.)."""

    pass


class RateLimitError(ProviderError):
    """Raised when a provider reports rate limiting (HTTP 429 or equivalent)."""

    pass


class ExtractionError(AishError):
    """Raised when a model response contains no parseable JSON object."""

    pass


class PlanValidationError(AishError):
    """Raised when a plan fails structural or semantic checks.

    Carries every violation, not just the first one.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class PlanGenerationError(AishError):
    """Raised when every generation attempt failed."""

    def __init__(self, message: str, *, attempts: int, last_error: Exception | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class UnsafePathError(AishError):
    """Raised when a file action targets an absolute or escaping path."""

    pass


class UnsafeCommandError(AishError):
    """Raised when a shell command is chained or matches a dangerous pattern."""

    pass


class CommandFailedError(AishError):
    """Raised when a shell command exits with a non-zero status."""

    def __init__(self, command: str, returncode: int) -> None:
        super().__init__(f"Command exited with code {returncode}: {command}")
        self.command = command
        self.returncode = returncode


class FileActionError(AishError):
    """Raised when a file action cannot be applied to the filesystem."""

    pass


class UnknownActionError(AishError):
    """Raised when a file action carries an unrecognized tag."""

    pass


class AmbiguousDeleteError(AishError):
    """Raised when a delete instruction has no unambiguous target.

    User-facing and non-fatal: the CLI reports it and exits cleanly.
    """

    pass
