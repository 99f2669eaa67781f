from pathlib import Path

# Memory storage
DEFAULT_MEMORY_DIRNAME = ".ai"
MEMORY_FILENAME = "memory.json"
MEMORY_TEMP_SUFFIX = ".json.tmp"

# Markers used to locate the project root
PROJECT_ROOT_MARKERS = ("package.json", "pyproject.toml", ".git")

# User-level config lives under the home directory
USER_CONFIG_PATH = Path(".aish") / "config.yml"

# Facts the generator is allowed to see
PLANNING_MEMORY_KEYS = (
    "known_dirs",
    "recent_files",
    "last_file",
    "framework",
    "styling",
    "project_type",
)

# Derived-memory caps
KNOWN_FILES_LIMIT = 50
RECENT_FILES_LIMIT = 5

# Generation defaults
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 0.5
DEFAULT_RATE_LIMIT_WAIT_SECONDS = 60.0

# Literal instruction that replays the undo slot
UNDO_INSTRUCTION = "undo"
