from pathlib import Path
import pytest

from aish.domain.persistence.memory_store import MemoryStore
from aish.domain.providers.provider_factory import ProviderFactory
from tests.fakes.scripted_provider import ScriptedProvider


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent unit tests from accidentally using developer machine env vars.

    If a test needs an env var, it should set it explicitly via monkeypatch.
    """
    monkeypatch.delenv("AISH_PROVIDER", raising=False)


@pytest.fixture(autouse=True)
def _register_test_providers():
    """Register the scripted provider with proper cleanup.

    Restores the registry and the class-level script afterward to prevent
    test pollution.
    """
    original_registry = dict(ProviderFactory._registry)
    ProviderFactory.register("scripted", ScriptedProvider)

    yield

    ProviderFactory._registry.clear()
    ProviderFactory._registry.update(original_registry)
    ScriptedProvider.script = []


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Hermetic project directory carrying a root marker."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "package.json").write_text("{}\n", encoding="utf-8")
    return root


@pytest.fixture
def memory(project_root: Path) -> MemoryStore:
    return MemoryStore(project_root)


@pytest.fixture
def utf8() -> str:
    """Canonical encoding used throughout tests."""
    return "utf-8"
