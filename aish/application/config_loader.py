import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from aish.application.config_models import AppConfig
from aish.domain.constants import DEFAULT_MEMORY_DIRNAME, USER_CONFIG_PATH

PROVIDER_ENV_VAR = "AISH_PROVIDER"


class ConfigLoadError(Exception):
    def __init__(self, message: str, *, path: Path | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge mapping keys. For non-dict values, overlay wins.
    """
    merged: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _deep_merge(merged[k], v)  # type: ignore[arg-type]
        else:
            merged[k] = v
    return merged


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """
    Load YAML file and ensure root is a mapping.
    """
    # Protect against TOCTOU race conditions.
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except Exception as e:  # pragma: no cover
        raise ConfigLoadError("Failed to read config file", path=path, cause=e) from e

    try:
        data = yaml.safe_load(raw)
    except Exception as e:
        raise ConfigLoadError("Malformed YAML", path=path, cause=e) from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigLoadError("YAML root must be a mapping", path=path)

    return data


def load_config(
    *,
    project_root: Path | None = None,
    user_home: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """
    Load and merge config with precedence (highest wins):
    environment > project > user > defaults.

    Files:
      - user:    user_home/.aish/config.yml
      - project: project_root/.ai/config.yml

    Environment:
      - AISH_PROVIDER: overrides the selected provider key

    Raises:
        ConfigLoadError: If a file is malformed or the merged config is invalid
    """
    project_root = project_root or Path.cwd()
    user_home = user_home or Path.home()
    environ = os.environ if environ is None else environ

    cfg: dict[str, Any] = {}

    user_path = user_home / USER_CONFIG_PATH
    cfg = _deep_merge(cfg, _load_yaml_mapping(user_path))

    project_path = project_root / DEFAULT_MEMORY_DIRNAME / "config.yml"
    cfg = _deep_merge(cfg, _load_yaml_mapping(project_path))

    provider_override = environ.get(PROVIDER_ENV_VAR, "").strip().lower()
    if provider_override:
        cfg["provider"] = provider_override

    try:
        return AppConfig.model_validate(cfg)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid configuration: {e}", cause=e) from e
