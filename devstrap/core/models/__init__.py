"""
Domain models — Pydantic types for devstrap.

Re-exported for convenience:

    from devstrap.core.models import Registry, ConfigEntry, Settings
"""

from devstrap.core.models.environment import (
    ActivationScript,
    EnvironmentRecord,
    EnvKind,
    ShellFunction,
)
from devstrap.core.models.registry import ConfigEntry, Registry, Strategy
from devstrap.core.models.settings import Settings

__all__ = [
    # environment.py
    "ActivationScript",
    "EnvKind",
    "EnvironmentRecord",
    "ShellFunction",
    # registry.py
    "ConfigEntry",
    "Registry",
    "Strategy",
    # settings.py
    "Settings",
]
