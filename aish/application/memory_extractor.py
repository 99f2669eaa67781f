from pathlib import PurePosixPath

from aish.domain.models.plan import CreateFileAction, ModifyFileAction, Plan

_EXTENSION_FRAMEWORKS = {
    ".jsx": ("react", "javascript"),
    ".tsx": ("react", "typescript"),
    ".vue": ("vue", "javascript"),
    ".svelte": ("svelte", "javascript"),
}


def extract_facts(plan: Plan) -> dict[str, str]:
    """
    Infer project facts from an applied plan.

    Heuristic only: facts are hints for later prompts, never relied on for
    safety decisions.
    """
    facts: dict[str, str] = {}

    if "component" in plan.intent.lower():
        facts["project_type"] = "component"

    for action in plan.files:
        path = PurePosixPath(action.path.replace("\\", "/"))
        ext = path.suffix

        if ext in _EXTENSION_FRAMEWORKS:
            framework, language = _EXTENSION_FRAMEWORKS[ext]
            facts["framework"] = framework
            facts["language"] = language
            facts["file_extension"] = ext

        if "src/components" in path.as_posix():
            facts["component_dir"] = "src/components"
            facts["last_component"] = path.stem

        if isinstance(action, (CreateFileAction, ModifyFileAction)):
            content = action.content.lower()
            if "classname" in content and ("bg-" in content or "flex" in content):
                facts["styling"] = "tailwind"

    return facts
