"""
Path validation utilities for aish.

Provides shared security validation for:
- Plan path shape (no absolute paths, no parent traversal)
- Root containment when resolving plan paths against the project root

Used by the plan validator at acceptance time and by the file applier again
right before touching disk.
"""

import re
from pathlib import Path, PurePosixPath, PureWindowsPath

from aish.domain.errors import UnsafePathError


class PathValidator:
    """Validates plan paths and resolves them inside a project root."""

    # Drive-letter prefix (C:\ or C:/) counts as absolute on any host
    WINDOWS_DRIVE_PATTERN = re.compile(r'^[a-zA-Z]:[\\/]')

    @classmethod
    def is_absolute(cls, path: str) -> bool:
        """
        Report whether a plan path is absolute on either POSIX or Windows.

        Examples:
            >>> PathValidator.is_absolute("/etc/passwd")
            True
            >>> PathValidator.is_absolute("src/app.py")
            False
        """
        if path.startswith(("/", "\\")):
            return True
        if cls.WINDOWS_DRIVE_PATTERN.match(path):
            return True
        return PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute()

    @classmethod
    def has_parent_traversal(cls, path: str) -> bool:
        """
        Report whether any segment of the path is ``..``.

        Both separators are honored so ``a\\..\\b`` is caught on POSIX hosts.

        Examples:
            >>> PathValidator.has_parent_traversal("../secrets.txt")
            True
            >>> PathValidator.has_parent_traversal("notes..txt")
            False
        """
        segments = re.split(r'[\\/]', path)
        return any(segment == ".." for segment in segments)

    @classmethod
    def check_plan_path(cls, path: str) -> str | None:
        """
        Return a violation message for an unsafe plan path, or None if safe.
        """
        if not path or not path.strip():
            return "File path cannot be empty"
        if cls.is_absolute(path) or cls.has_parent_traversal(path):
            return f"Unsafe file path: {path}"
        return None

    @classmethod
    def validate_plan_path(cls, path: str) -> str:
        """
        Validate a plan path, returning it unchanged when safe.

        Raises:
            UnsafePathError: If the path is empty, absolute or traverses upward
        """
        problem = cls.check_plan_path(path)
        if problem:
            raise UnsafePathError(problem)
        return path

    @classmethod
    def validate_within_root(cls, file_path: Path, root: Path) -> Path:
        """
        Validate that file_path is within root directory (no path traversal).

        Symlinks are resolved, so a link pointing outside the root is rejected.

        Returns:
            Resolved file path

        Raises:
            UnsafePathError: If file_path escapes root directory
        """
        file_resolved = file_path.resolve()
        root_resolved = root.resolve()
        try:
            file_resolved.relative_to(root_resolved)
        except ValueError:
            raise UnsafePathError(
                f"Path traversal detected: {file_path} is not within {root}"
            )
        return file_resolved

    @classmethod
    def resolve_in_root(cls, path: str, root: Path) -> Path:
        """
        Validate a plan path and resolve it against the project root.

        Raises:
            UnsafePathError: If the path is unsafe or escapes the root
        """
        cls.validate_plan_path(path)
        return cls.validate_within_root(root / path, root)
