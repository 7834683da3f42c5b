"""
Development environment models.

An environment is a directory under the environments root holding a
``.env_meta`` record, a kind-specific skeleton and an ``activate.sh``.
"""

from __future__ import annotations

import re
from datetime import date
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

ENV_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

META_FILE = ".env_meta"
ACTIVATE_FILE = "activate.sh"


class EnvKind(str, Enum):
    PYTHON = "python"
    NODE = "node"
    CPP = "cpp"
    GENERIC = "generic"


class EnvironmentRecord(BaseModel):
    """A created environment as read back from disk.

    ``kind`` is a string because directories without (or with a damaged)
    metadata file are listed with kind ``unknown``.
    """

    name: str
    kind: str = "unknown"
    created_at: date | None = None
    root: Path

    @property
    def activate_script(self) -> Path:
        return self.root / ACTIVATE_FILE

    @property
    def meta_file(self) -> Path:
        return self.root / META_FILE

    def to_meta(self) -> str:
        """Serialize as the ``key=value`` lines of ``.env_meta``."""
        created = self.created_at.isoformat() if self.created_at else ""
        return f"name={self.name}\ntype={self.kind}\ncreated={created}\n"


class ShellFunction(BaseModel):
    """A shell function defined on activation and removed on deactivation."""

    model_config = ConfigDict(frozen=True)

    name: str
    body: list[str] = Field(default_factory=list)


class ActivationScript(BaseModel):
    """Everything an activation does, as data.

    Attributes:
        env_name:      Environment name (also the prompt label).
        kind:          Environment kind.
        exports:       Literal variables to export.
        dir_exports:   Variables whose value is a path relative to the
                       environment root ("" is the root itself).
        path_segments: Root-relative directories prepended to PATH, in
                       order (first wins).
        prompt_prefix: Text put in front of PS1.
        functions:     Helper functions (besides ``deactivate``).
        messages:      Lines echoed after activation.
    """

    env_name: str
    kind: EnvKind
    exports: dict[str, str] = Field(default_factory=dict)
    dir_exports: dict[str, str] = Field(default_factory=dict)
    path_segments: list[str] = Field(default_factory=list)
    prompt_prefix: str = ""
    functions: list[ShellFunction] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)

    @property
    def exported_names(self) -> list[str]:
        """All variables the activation sets (and deactivation unsets)."""
        return [*self.exports, *self.dir_exports]

    def resolved_exports(self, root: Path) -> dict[str, str]:
        """Exports with root-relative values made absolute."""
        values = dict(self.exports)
        for name, rel in self.dir_exports.items():
            values[name] = str(root / rel) if rel else str(root)
        return values

    def resolved_path(self, root: Path) -> list[str]:
        return [str(root / seg) for seg in self.path_segments]
