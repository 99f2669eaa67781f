"""Prompt builder for plan generation.

Implements the Builder pattern: the fixed planning rules go out as the system
prompt, and the per-attempt user prompt is assembled from the validation
feedback of the previous attempt, the allow-listed memory and the instruction.
"""
from typing import Mapping, Self

SYSTEM_PROMPT = """\
You are a planning engine for a CLI automation tool.

CRITICAL RULES:
- Tool-specific verbs (e.g. "git add", "git commit", "git push", "npm install") are COMMAND intents, not filesystem intents.
- The word "add" does NOT imply file creation or modification unless a file path is explicitly named for content change.
- Git operations MUST be modeled as shell commands.
- For create and modify intents, you MUST produce file actions with content.
- For rename and delete intents, you MUST produce filesystem actions only.
- Filesystem mutations MUST use file actions, not shell commands.
- NEVER return an empty files array for create or modify intents.
- If intent cannot be fulfilled unambiguously, set "clarification".
- Follow existing project conventions from Known context strictly.
- Do NOT infer frameworks, languages, or tools unless explicitly stated.
- All shell commands MUST use double quotes for string arguments. Never use single quotes.

OUTPUT RULES:
- Output ONLY valid JSON
- No explanations
- No markdown
- No comments

Schema:
{
  "intent": string,
  "summary": string,
  "clarification": string | null,
  "files": [
    { "action": "create", "path": string, "content": string }
    | { "action": "modify", "path": string, "content": string }
    | { "action": "rename", "path": string, "to": string }
    | { "action": "delete", "path": string }
  ],
  "commands": [
    { "cmd": string, "risk": "low" | "medium" | "high" }
  ],
  "refusal": string | null
}
"""


class PlanPromptBuilder:
    """Builds the user prompt for one generation attempt."""

    def __init__(self) -> None:
        self._feedback: str | None = None
        self._memory: dict[str, str] = {}
        self._instruction: str | None = None

    def with_feedback(self, feedback: str | None) -> Self:
        """Set the validation error reported for the previous attempt."""
        self._feedback = feedback
        return self

    def with_memory(self, memory: Mapping[str, str]) -> Self:
        self._memory = dict(memory)
        return self

    def with_instruction(self, instruction: str) -> Self:
        self._instruction = instruction
        return self

    def build(self) -> str:
        """Render the user prompt.

        Raises:
            ValueError: If no instruction was set
        """
        if not self._instruction:
            raise ValueError("instruction is required")

        sections: list[str] = []
        if self._feedback:
            sections.append(
                "VALIDATION ERROR:\n"
                f"{self._feedback}\n"
                "Fix the plan to satisfy the rules above."
            )

        memory_context = "\n".join(f"- {k}: {v}" for k, v in self._memory.items())
        sections.append(f"Known context:\n{memory_context or '(none)'}")
        sections.append(f"User input:\n{self._instruction}")
        return "\n\n".join(sections) + "\n"
