"""
Settings model — where devstrap reads and writes.

Built by :mod:`devstrap.core.config.loader` from defaults, an optional
``devstrap.yml`` and environment overrides.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class Settings(BaseModel):
    """Resolved filesystem locations and a few tunables."""

    repo_root: Path
    configs_dir: Path
    registry_dir: Path
    credentials_dir: Path
    environments_dir: Path
    audit_file: Path
    keychain_prefix: str = "dev_env_credentials"
    python_version: str = "3.13"
