import os
from dataclasses import dataclass, field
from pathlib import Path

IGNORED_DIRS = frozenset({
    "node_modules",
    ".git",
    ".ai",
    "dist",
    "build",
    "__pycache__",
    ".venv",
})

DEFAULT_MAX_DEPTH = 3


@dataclass(slots=True)
class ScanResult:
    known_dirs: dict[str, int] = field(default_factory=dict)
    known_files: list[str] = field(default_factory=list)


def scan_project(root: Path, max_depth: int = DEFAULT_MAX_DEPTH) -> ScanResult:
    """
    Walk the project tree and record which directories hold files.

    Paths are POSIX-style and relative to root; the root itself is ".".
    Directories deeper than max_depth are not visited.
    """
    result = ScanResult()

    def walk(directory: Path, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError:
            return

        file_count = 0
        for entry in entries:
            if entry.name in IGNORED_DIRS:
                continue
            full = Path(entry.path)
            if entry.is_dir(follow_symlinks=False):
                walk(full, depth + 1)
            elif entry.is_file():
                file_count += 1
                result.known_files.append(full.relative_to(root).as_posix())

        if file_count:
            rel = directory.relative_to(root).as_posix()
            result.known_dirs[rel] = file_count

    walk(root, 0)
    return result
