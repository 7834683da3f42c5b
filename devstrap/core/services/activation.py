"""
Environment activation — one data model, two ways to apply it.

An activation is described by :class:`ActivationScript` (exports, PATH
segments, prompt prefix, helper functions).  It can be:

    rendered  → activate.sh, sourced by the user's shell
    entered   → ActivationContext, applied to os.environ in-process

Both refuse nested activation: the rendered script checks
``DEV_ENV_NAME``; the context manager keeps a module-level stack.
Deactivation restores exactly the saved PATH/PS1 and unsets everything
the activation defined.
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import MutableMapping
from pathlib import Path
from typing import Optional

from devstrap.core.errors import NestedActivationError
from devstrap.core.models.environment import ActivationScript, EnvKind, ShellFunction

logger = logging.getLogger(__name__)

MARKER_VAR = "DEV_ENV_NAME"
ROOT_VAR = "_DEV_ENV_ROOT"
OLD_PATH_VAR = "_DEV_ENV_OLD_PATH"
OLD_PS1_VAR = "_DEV_ENV_OLD_PS1"

INDENT = "    "


# ═══════════════════════════════════════════════════════════════════
#  Builders
# ═══════════════════════════════════════════════════════════════════


_CPP_BUILD = ShellFunction(
    name="build",
    body=[
        'local build_type="${1:-Debug}"',
        'echo "Building in $build_type mode..."',
        'mkdir -p "$CMAKE_BUILD_DIR"',
        'if (cd "$CMAKE_BUILD_DIR" && cmake -DCMAKE_BUILD_TYPE="$build_type" .. && cmake --build .); then',
        '    echo "Build successful!"',
        "else",
        '    echo "Build failed!"',
        "    return 1",
        "fi",
    ],
)


def build_activation_script(kind: EnvKind, name: str) -> ActivationScript:
    """Activation model for an environment of *kind* named *name*."""
    script = ActivationScript(
        env_name=name,
        kind=kind,
        exports={"DEV_ENV_NAME": name, "DEV_ENV_TYPE": kind.value},
        dir_exports={"DEV_ENV_DIR": ""},
        prompt_prefix=f"(env:{name}) ",
        messages=[f"Development environment '{name}' activated"],
    )

    if kind is EnvKind.PYTHON:
        script.dir_exports["VIRTUAL_ENV"] = ".venv"
        script.path_segments = [".venv/bin", "bin"]
    elif kind is EnvKind.NODE:
        script.path_segments = ["node_modules/.bin", "bin"]
    elif kind is EnvKind.CPP:
        script.dir_exports["CMAKE_BUILD_DIR"] = "build"
        script.path_segments = ["bin", "build/bin"]
        script.functions = [_CPP_BUILD]
        script.messages.append("Type 'build' to compile the project")
    else:
        script.path_segments = ["bin"]

    script.messages.append("Type 'deactivate' to exit the environment")
    return script


# ═══════════════════════════════════════════════════════════════════
#  Shell rendering
# ═══════════════════════════════════════════════════════════════════


def _render_function(name: str, body: list[str]) -> list[str]:
    return [f"{name}() {{", *(f"{INDENT}{line}" for line in body), "}"]


def render_activation_script(script: ActivationScript) -> str:
    """Render *script* as a bash/zsh file meant to be sourced."""
    q = shlex.quote
    lines = [
        "#!/bin/bash",
        f"# Activation script for development environment '{script.env_name}' ({script.kind.value}).",
        "# Usage: source activate.sh",
        "",
        f'if [ -n "${{{MARKER_VAR}:-}}" ]; then',
        f"{INDENT}echo \"Environment '${MARKER_VAR}' is already active. Run 'deactivate' first.\" >&2",
        f"{INDENT}return 1 2>/dev/null || exit 1",
        "fi",
        "",
        f'{ROOT_VAR}="$(cd "$(dirname "${{BASH_SOURCE[0]:-$0}}")" && pwd)"',
        f'{OLD_PATH_VAR}="$PATH"',
        f"unset {OLD_PS1_VAR}",
        f'if [ -n "${{PS1+x}}" ]; then {OLD_PS1_VAR}="$PS1"; fi',
        "",
    ]

    for var, value in script.exports.items():
        lines.append(f"export {var}={q(value)}")
    for var, rel in script.dir_exports.items():
        suffix = f"/{rel}" if rel else ""
        lines.append(f'export {var}="${ROOT_VAR}{suffix}"')

    if script.path_segments:
        segments = ":".join(f"${ROOT_VAR}/{seg}" for seg in script.path_segments)
        lines.append(f'export PATH="{segments}:$PATH"')
    if script.prompt_prefix:
        lines.append(f'export PS1={q(script.prompt_prefix)}"${{PS1:-}}"')
    lines.append("")

    for fn in script.functions:
        lines.extend(_render_function(fn.name, fn.body))
        lines.append("")

    teardown = [
        f'export PATH="${OLD_PATH_VAR}"',
        f'if [ -n "${{{OLD_PS1_VAR}+x}}" ]; then export PS1="${OLD_PS1_VAR}"; else unset PS1; fi',
        f"unset {' '.join(script.exported_names)}",
        f"unset {OLD_PATH_VAR} {OLD_PS1_VAR}",
        *(f"unset -f {fn.name}" for fn in script.functions),
        "unset -f deactivate",
    ]
    lines.extend(_render_function("deactivate", teardown))
    lines.append("")

    lines.append(f"unset {ROOT_VAR}")
    for message in script.messages:
        lines.append(f"echo {q(message)}")

    return "\n".join(lines) + "\n"


# ═══════════════════════════════════════════════════════════════════
#  In-process activation
# ═══════════════════════════════════════════════════════════════════


_stack: list["ActivationContext"] = []


def active_context() -> Optional["ActivationContext"]:
    """The context currently entered in this process, if any."""
    return _stack[-1] if _stack else None


class ActivationContext:
    """Apply an activation to a mapping (default ``os.environ``) for a block.

    Usage::

        with ActivationContext(script, root):
            subprocess.run(["python", "-V"])   # sees the venv first on PATH

    ``previous`` holds the touched variables as they were before entry
    (None = unset); ``current`` what the activation set.  Exit restores
    ``previous`` exactly, even if the block raised.
    """

    def __init__(
        self,
        script: ActivationScript,
        root: Path,
        environ: Optional[MutableMapping[str, str]] = None,
    ):
        self.script = script
        self.root = root
        self.environ = os.environ if environ is None else environ
        self.previous: dict[str, Optional[str]] = {}
        self.current: dict[str, str] = {}

    def _compute(self) -> dict[str, str]:
        env = self.environ
        values = self.script.resolved_exports(self.root)

        segments = self.script.resolved_path(self.root)
        old_path = env.get("PATH", "")
        values["PATH"] = os.pathsep.join([*segments, old_path] if old_path else segments)

        if self.script.prompt_prefix and "PS1" in env:
            values["PS1"] = self.script.prompt_prefix + env["PS1"]
        return values

    def __enter__(self) -> "ActivationContext":
        outer = active_context()
        if outer is not None:
            raise NestedActivationError(
                f"Environment '{outer.script.env_name}' is already active; "
                f"cannot activate '{self.script.env_name}'"
            )
        if self.environ.get(MARKER_VAR):
            raise NestedActivationError(
                f"Environment '{self.environ[MARKER_VAR]}' is already active; "
                f"cannot activate '{self.script.env_name}'"
            )

        self.current = self._compute()
        self.previous = {k: self.environ.get(k) for k in self.current}
        self.environ.update(self.current)
        _stack.append(self)
        logger.debug("Activated '%s' in-process", self.script.env_name)
        return self

    def __exit__(self, *exc_info: object) -> None:
        for key, value in self.previous.items():
            if value is None:
                self.environ.pop(key, None)
            else:
                self.environ[key] = value
        _stack.remove(self)
        logger.debug("Deactivated '%s'", self.script.env_name)
