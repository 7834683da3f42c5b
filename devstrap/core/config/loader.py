"""
Settings loader — defaults, devstrap.yml, then environment overrides.

``devstrap.yml`` is optional.  When present (found by walking up from
the working directory, or given with ``--config``) its directory is the
repository root and relative paths inside it are resolved against it::

    configs_dir: configs
    credentials_dir: $XDG_CONFIG_HOME/credentials
    environments_dir: ~/.dev_environments
    python_version: "3.12"

Environment variables win over the file:
DEVSTRAP_CONFIGS_DIR, DEVSTRAP_CREDENTIALS_DIR, DEVSTRAP_ENVIRONMENTS_DIR.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from devstrap.core.config.paths import expand_target, home_dir, xdg_dir
from devstrap.core.errors import ConfigError
from devstrap.core.models.settings import Settings

logger = logging.getLogger(__name__)

SETTINGS_FILE = "devstrap.yml"

_PATH_KEYS = ("configs_dir", "registry_dir", "credentials_dir", "environments_dir", "audit_file")

_ENV_OVERRIDES = {
    "DEVSTRAP_CONFIGS_DIR": "configs_dir",
    "DEVSTRAP_CREDENTIALS_DIR": "credentials_dir",
    "DEVSTRAP_ENVIRONMENTS_DIR": "environments_dir",
}


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for devstrap.yml from *start_dir* (default: cwd) upwards."""
    current = (start_dir or Path.cwd()).resolve()

    while True:
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def default_settings_data(repo_root: Path, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Built-in defaults, before the settings file and env overrides."""
    configs_dir = repo_root / "configs"
    return {
        "repo_root": repo_root,
        "configs_dir": configs_dir,
        "registry_dir": configs_dir / "registry",
        "credentials_dir": xdg_dir("XDG_CONFIG_HOME", environ) / "credentials",
        "environments_dir": home_dir(environ) / ".dev_environments",
        "audit_file": xdg_dir("XDG_STATE_HOME", environ) / "devstrap" / "audit.ndjson",
    }


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    *,
    search: bool = True,
) -> Settings:
    """Resolve settings.

    Args:
        path: Explicit devstrap.yml.  Must exist if given.
        environ: Environment mapping (default: ``os.environ``).
        search: Walk up from cwd for devstrap.yml when *path* is None.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    env = os.environ if environ is None else environ

    if path is not None and not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")
    if path is None and search:
        path = find_settings_file()

    repo_root = path.parent.resolve() if path else Path.cwd().resolve()
    data = default_settings_data(repo_root, env)

    if path is not None:
        file_data = _read_settings_file(path)
        # registry_dir follows configs_dir unless set explicitly
        if "configs_dir" in file_data and "registry_dir" not in file_data:
            file_data["registry_dir"] = Path(str(file_data["configs_dir"])) / "registry"
        data.update(_resolve_paths(file_data, repo_root, env))

    overrides: dict[str, Any] = {}
    for var, key in _ENV_OVERRIDES.items():
        if env.get(var):
            overrides[key] = env[var]
    if "configs_dir" in overrides:
        overrides["registry_dir"] = Path(overrides["configs_dir"]) / "registry"
    data.update(_resolve_paths(overrides, Path.cwd(), env))

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug("Settings resolved: configs=%s credentials=%s environments=%s",
                 settings.configs_dir, settings.credentials_dir, settings.environments_dir)
    return settings


def _read_settings_file(path: Path) -> dict[str, Any]:
    logger.debug("Loading settings from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _resolve_paths(data: dict[str, Any], base: Path, environ: Mapping[str, str]) -> dict[str, Any]:
    """Expand variables/``~`` in path keys and anchor relative ones at *base*."""
    resolved = dict(data)
    for key in _PATH_KEYS:
        if key not in resolved or resolved[key] is None:
            continue
        p = Path(expand_target(str(resolved[key]), environ))
        resolved[key] = p if p.is_absolute() else (base / p)
    return resolved
