"""
Base directories and target-path expansion.

Fallbacks when the XDG variables are unset:

    XDG_CONFIG_HOME  →  $HOME/.config
    XDG_CACHE_HOME   →  $HOME/.cache
    XDG_DATA_HOME    →  $HOME/.local/share
    XDG_STATE_HOME   →  $HOME/.local/state

Registry targets such as ``$XDG_CONFIG_HOME/zsh/paths.zsh`` are expanded
against the process environment with these fallbacks filled in.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path

from devstrap.core.errors import UnresolvedVariableError

logger = logging.getLogger(__name__)

XDG_DEFAULTS: dict[str, str] = {
    "XDG_CONFIG_HOME": ".config",
    "XDG_CACHE_HOME": ".cache",
    "XDG_DATA_HOME": ".local/share",
    "XDG_STATE_HOME": ".local/state",
}

_VAR_RE = re.compile(r"\$\{(\w+)\}|\$(\w+)")


def home_dir(environ: Mapping[str, str] | None = None) -> Path:
    """$HOME, or the password-database home when unset."""
    env = os.environ if environ is None else environ
    home = env.get("HOME")
    return Path(home) if home else Path.home()


def xdg_dir(name: str, environ: Mapping[str, str] | None = None) -> Path:
    """Resolve one XDG base directory (``XDG_CONFIG_HOME`` etc.)."""
    env = os.environ if environ is None else environ
    value = env.get(name)
    if value:
        return Path(value)
    return home_dir(env) / XDG_DEFAULTS[name]


def expansion_environ(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment used for target expansion: real env + XDG fallbacks."""
    env = dict(os.environ if environ is None else environ)
    env.setdefault("HOME", str(home_dir(env)))
    for name in XDG_DEFAULTS:
        env.setdefault(name, str(xdg_dir(name, env)))
    return env


def unresolved_variables(text: str) -> list[str]:
    """Names of ``$VAR`` / ``${VAR}`` references still present in *text*."""
    return [m.group(1) or m.group(2) for m in _VAR_RE.finditer(text)]


def expand_target(
    target: str,
    environ: Mapping[str, str] | None = None,
    *,
    strict: bool = False,
) -> str:
    """Expand ``~`` and variable references in a registry target.

    Undefined variables are left verbatim.  With ``strict=True`` they
    raise :class:`UnresolvedVariableError` instead.
    """
    env = expansion_environ(environ)

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        return env.get(name, match.group(0))

    expanded = _VAR_RE.sub(_sub, target)
    if expanded == "~" or expanded.startswith("~/"):
        expanded = env["HOME"] + expanded[1:]

    missing = unresolved_variables(expanded)
    if missing:
        if strict:
            raise UnresolvedVariableError(
                f"Unresolved variable(s) in target {target!r}: {', '.join(missing)}"
            )
        logger.warning("Target %r keeps unresolved variable(s): %s", target, ", ".join(missing))
    return expanded
