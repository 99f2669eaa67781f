"""Tests for PlanPromptBuilder."""

import pytest

from aish.application.prompt_builder import SYSTEM_PROMPT, PlanPromptBuilder


def test_build_without_feedback_or_memory():
    prompt = PlanPromptBuilder().with_instruction("add a button").build()

    assert prompt == "Known context:\n(none)\n\nUser input:\nadd a button\n"


def test_build_with_feedback_and_memory():
    prompt = (
        PlanPromptBuilder()
        .with_feedback("Unsafe file path: /x")
        .with_memory({"framework": "react", "last_file": "src/a.jsx"})
        .with_instruction("edit it")
        .build()
    )

    assert prompt == (
        "VALIDATION ERROR:\n"
        "Unsafe file path: /x\n"
        "Fix the plan to satisfy the rules above.\n\n"
        "Known context:\n"
        "- framework: react\n"
        "- last_file: src/a.jsx\n\n"
        "User input:\n"
        "edit it\n"
    )


def test_build_requires_instruction():
    with pytest.raises(ValueError, match="instruction is required"):
        PlanPromptBuilder().with_memory({}).build()


def test_system_prompt_documents_schema():
    """The system prompt carries the plan schema and the quoting rule."""
    assert '"refusal": string | null' in SYSTEM_PROMPT
    assert "double quotes" in SYSTEM_PROMPT
