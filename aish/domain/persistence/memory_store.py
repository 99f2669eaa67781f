from pathlib import Path
import json
import logging
from typing import Any

from aish.domain.constants import (
    DEFAULT_MEMORY_DIRNAME,
    MEMORY_FILENAME,
    MEMORY_TEMP_SUFFIX,
    PROJECT_ROOT_MARKERS,
)

logger = logging.getLogger(__name__)


def find_project_root(start_dir: Path | None = None) -> Path:
    """
    Walk upward from start_dir to the nearest directory holding a project marker.

    Falls back to start_dir (default: cwd) when no marker is found.
    """
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        if any((directory / marker).exists() for marker in PROJECT_ROOT_MARKERS):
            return directory
    return start


class MemoryStore:
    """Persistent string-to-string facts for one project.

    Values are stored as strings; structured facts go through get_json/set_json.
    """

    def __init__(self, project_root: Path, memory_dirname: str = DEFAULT_MEMORY_DIRNAME):
        """
        Initialize the memory store.

        Args:
            project_root: Root of the project the memory belongs to
            memory_dirname: Directory under project_root holding memory.json
        """
        self.project_root = project_root
        self.memory_dir = project_root / memory_dirname
        self.memory_dir.mkdir(parents=True, exist_ok=True)

        gitignore = self.memory_dir / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text("*\n", encoding="utf-8")

        self.memory_file = self.memory_dir / MEMORY_FILENAME
        self._data = self._load()

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        """
        Store a value and persist the whole mapping.

        Raises:
            TypeError: If value is not a string
        """
        if not isinstance(value, str):
            raise TypeError(f"Memory values must be strings, got {type(value).__name__} for '{key}'")
        self._data[key] = value
        self._save()

    def get_json(self, key: str, fallback: Any = None) -> Any:
        """
        Decode a JSON-encoded fact.

        Returns fallback when the key is missing, empty or not valid JSON.
        """
        raw = self.get(key)
        if not raw:
            return fallback
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Memory key '{key}' is not valid JSON, using fallback")
            return fallback

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))

    def all(self) -> dict[str, str]:
        return dict(self._data)

    def clear(self) -> None:
        self._data = {}
        self._save()

    def has_scanned(self) -> bool:
        return self.get("dir_scanned") == "true"

    def mark_scanned(self) -> None:
        self.set("dir_scanned", "true")

    def _load(self) -> dict[str, str]:
        """
        Load memory.json, treating a missing file as empty memory.

        Raises:
            ValueError: If memory.json is not a JSON object of strings
        """
        try:
            with open(self.memory_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid memory file {self.memory_file}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid memory file {self.memory_file}: root must be an object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        temp_file = self.memory_file.with_suffix(MEMORY_TEMP_SUFFIX)

        # Write atomically - write to temp, then rename
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)

        temp_file.replace(self.memory_file)
