"""Heuristic intent and command classifiers.

Every function here is a pure string classifier built from regular expressions
and literal lists. They are best-effort filters that keep obviously bad plans
out; they are not a security boundary and can be swapped out independently.
"""

import re
from enum import Enum


class IntentClass(str, Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    UNKNOWN = "unknown"


# Order matters: the first matching class wins
_INTENT_KEYWORDS: tuple[tuple[IntentClass, tuple[str, ...]], ...] = (
    (IntentClass.CREATE, ("create", "add", "generate")),
    (IntentClass.MODIFY, ("modify", "edit", "update")),
    (IntentClass.DELETE, ("delete", "remove")),
)

# Validation-time blocklist, plain case-insensitive substrings
PLAN_COMMAND_BLOCKLIST = (
    "rm ",
    "sudo",
    "chmod 777",
    "|",
    "&&",
    "shutdown",
    "reboot",
)

GENERATOR_TOKENS = ("create", "init", "new")

FILESYSTEM_COMMAND_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^mv\b",
        r"^cp\b",
        r"^rm\b",
        r"^del\b",
        r"^rename\b",
    )
]

# Execution-time patterns for irreversible system damage
DANGEROUS_COMMAND_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\brm\s+-rf\b",
        r"\bdel\s+/s\b",
        r"\bmkfs\b",
        r"\bdd\b",
        r"\bshutdown\b",
        r"\breboot\b",
        r"\bformat\b",
        r"\bcurl\b.*\|\s*(sh|bash)\b",
        r"\bwget\b.*\|\s*(sh|bash)\b",
        r">\s*/dev/sd",
    )
]

CHAINING_OPERATORS = ("&&", "|", ";")

_COMMAND_DOMAIN_PATTERN = re.compile(r"\b(git|npm|npx|pnpm|yarn|docker|kubectl)\b", re.IGNORECASE)
_PURE_COMMAND_PATTERN = re.compile(r"\b(git|npm|npx|pnpm|yarn|docker)\b", re.IGNORECASE)
_DELETE_PATTERN = re.compile(r"\bdelete\b", re.IGNORECASE)
_EXTENSION_PATTERN = re.compile(r"\.[a-z0-9]+", re.IGNORECASE)


def normalize_intent(intent: str) -> IntentClass:
    """Collapse a free-text intent into one of four classes."""
    lowered = intent.lower()
    for intent_class, keywords in _INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent_class
    return IntentClass.UNKNOWN


def is_blocklisted_command(cmd: str) -> bool:
    lowered = cmd.lower()
    return any(item in lowered for item in PLAN_COMMAND_BLOCKLIST)


def is_generator_command(cmd: str) -> bool:
    """True when the command scaffolds a project (``npm init``, ``rails new``...)."""
    return any(
        f" {token} " in cmd or cmd.startswith(f"{token} ")
        for token in GENERATOR_TOKENS
    )


def is_filesystem_command(cmd: str) -> bool:
    stripped = cmd.strip()
    return any(pattern.search(stripped) for pattern in FILESYSTEM_COMMAND_PATTERNS)


def is_chained_command(cmd: str) -> bool:
    return any(operator in cmd for operator in CHAINING_OPERATORS)


def is_dangerous_command(cmd: str) -> bool:
    return any(pattern.search(cmd) for pattern in DANGEROUS_COMMAND_PATTERNS)


def is_command_domain(instruction: str) -> bool:
    """True when the instruction targets a developer tool (git, npm, docker...)."""
    return bool(_COMMAND_DOMAIN_PATTERN.search(instruction.strip()))


def looks_like_pure_command(instruction: str) -> bool:
    return bool(_PURE_COMMAND_PATTERN.search(instruction))


def is_delete_intent(instruction: str) -> bool:
    return bool(_DELETE_PATTERN.search(instruction))


def has_explicit_extension(instruction: str) -> bool:
    return bool(_EXTENSION_PATTERN.search(instruction))
