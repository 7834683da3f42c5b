"""
Environment registry — named, typed development environments on disk.

    ~/.dev_environments/
      myproject/
        .env_meta        name=myproject / type=python / created=2025-01-01
        activate.sh      source this to enter the environment
        .venv/ bin/ ...  kind-specific skeleton

Activation never happens here: ``activate`` only returns the script
path, because only the user's own shell can source it.  For running a
single command inside an environment see :func:`activation_context`.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import sys
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from devstrap.core.errors import (
    AlreadyExistsError,
    DevstrapError,
    InvalidNameError,
    NotFoundError,
)
from devstrap.core.models.environment import (
    ACTIVATE_FILE,
    ENV_NAME_RE,
    META_FILE,
    EnvironmentRecord,
    EnvKind,
)
from devstrap.core.services.activation import (
    ActivationContext,
    build_activation_script,
    render_activation_script,
)
from devstrap.core.services.audit_helpers import make_auditor

logger = logging.getLogger(__name__)

_audit = make_auditor("env")

ACTIVATE_MODE = 0o755
PROJECT_TYPES = ("app", "lib", "package")

# Order of the interactive kind menu (1-4)
KIND_CHOICES = (EnvKind.PYTHON, EnvKind.NODE, EnvKind.CPP, EnvKind.GENERIC)


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def _environments_dir(environments_dir: Optional[Path]) -> Path:
    if environments_dir is not None:
        return environments_dir
    from devstrap.core.context import get_settings

    return get_settings().environments_dir


def _python_version() -> str:
    from devstrap.core.context import get_settings

    return get_settings().python_version


def validate_name(name: str) -> None:
    if not name or not ENV_NAME_RE.match(name):
        raise InvalidNameError(
            "Environment name must only contain letters, numbers, hyphens, and underscores"
        )


def run_uv(*args: str, cwd: Path, timeout: int = 300) -> subprocess.CompletedProcess[str]:
    """Run a uv command and return the result."""
    return subprocess.run(
        ["uv", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def parse_meta(text: str) -> dict[str, str]:
    """``key=value`` lines → dict.  Blank and malformed lines are skipped."""
    meta: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            meta[key.strip()] = value.strip()
    return meta


def read_record(root: Path) -> EnvironmentRecord:
    """Build a record from an environment directory (kind ``unknown`` if no metadata)."""
    meta_path = root / META_FILE
    if not meta_path.is_file():
        return EnvironmentRecord(name=root.name, root=root)

    meta = parse_meta(meta_path.read_text(encoding="utf-8"))
    created: Optional[date] = None
    try:
        created = date.fromisoformat(meta.get("created", ""))
    except ValueError:
        logger.debug("Bad created date in %s", meta_path)

    return EnvironmentRecord(
        name=root.name,
        kind=meta.get("type") or "unknown",
        created_at=created,
        root=root,
    )


# ═══════════════════════════════════════════════════════════════════
#  Skeletons
# ═══════════════════════════════════════════════════════════════════


def _provision_venv(root: Path) -> None:
    """Create ``root/.venv`` with uv, or the stdlib venv module without it."""
    if shutil.which("uv"):
        logger.info("Creating Python virtual environment with uv...")
        result = run_uv("venv", cwd=root)
    else:
        logger.info("uv not found, falling back to %s -m venv", sys.executable)
        result = subprocess.run(
            [sys.executable, "-m", "venv", ".venv"],
            cwd=str(root),
            capture_output=True,
            text=True,
            timeout=300,
        )
    if result.returncode != 0:
        raise DevstrapError(f"Failed to create virtual environment: {result.stderr.strip()}")


def _python_skeleton(root: Path, name: str) -> None:
    _provision_venv(root)
    (root / ".python-version").write_text(f"{_python_version()}\n", encoding="utf-8")
    (root / "bin").mkdir(exist_ok=True)


def _node_skeleton(root: Path, name: str) -> None:
    manifest = root / "package.json"
    if not manifest.exists():
        manifest.write_text(json.dumps({
            "name": name.lower(),
            "version": "1.0.0",
            "description": "",
            "main": "index.js",
            "scripts": {"test": 'echo "Error: no test specified" && exit 1'},
            "keywords": [],
            "author": "",
            "license": "ISC",
        }, indent=2) + "\n", encoding="utf-8")
    (root / "bin").mkdir(exist_ok=True)
    (root / "node_modules" / ".bin").mkdir(parents=True, exist_ok=True)


_CMAKELISTS = """\
cmake_minimum_required(VERSION 3.15)
project({name} VERSION 0.1.0)

set(CMAKE_CXX_STANDARD 17)
set(CMAKE_CXX_STANDARD_REQUIRED ON)

include_directories(include)

file(GLOB_RECURSE SOURCES "src/*.cpp")
list(FILTER SOURCES EXCLUDE REGEX ".*/main\\\\.cpp$")

if(SOURCES)
    add_library(${{PROJECT_NAME}} ${{SOURCES}})
endif()

add_executable(${{PROJECT_NAME}}_run src/main.cpp)
if(SOURCES)
    target_link_libraries(${{PROJECT_NAME}}_run PRIVATE ${{PROJECT_NAME}})
endif()

set(CMAKE_RUNTIME_OUTPUT_DIRECTORY ${{CMAKE_BINARY_DIR}}/bin)
set(CMAKE_LIBRARY_OUTPUT_DIRECTORY ${{CMAKE_BINARY_DIR}}/lib)
"""

_MAIN_CPP = """\
#include <iostream>

int main() {{
    std::cout << "Hello from {name} environment!" << std::endl;
    return 0;
}}
"""


def _cpp_skeleton(root: Path, name: str) -> None:
    for sub in ("src", "include", "build", "bin"):
        (root / sub).mkdir(exist_ok=True)
    (root / "CMakeLists.txt").write_text(_CMAKELISTS.format(name=name), encoding="utf-8")
    (root / "src" / "main.cpp").write_text(_MAIN_CPP.format(name=name), encoding="utf-8")


def _generic_skeleton(root: Path, name: str) -> None:
    (root / "bin").mkdir(exist_ok=True)


_SKELETONS: dict[EnvKind, Callable[[Path, str], None]] = {
    EnvKind.PYTHON: _python_skeleton,
    EnvKind.NODE: _node_skeleton,
    EnvKind.CPP: _cpp_skeleton,
    EnvKind.GENERIC: _generic_skeleton,
}


# ═══════════════════════════════════════════════════════════════════
#  Operations
# ═══════════════════════════════════════════════════════════════════


def environment_root(name: str, environments_dir: Optional[Path] = None) -> Path:
    return _environments_dir(environments_dir) / name


def create(
    name: str,
    kind: EnvKind | str,
    environments_dir: Optional[Path] = None,
) -> EnvironmentRecord:
    """Create environment *name* of *kind*.

    Raises:
        InvalidNameError: *name* fails the name pattern.
        AlreadyExistsError: The directory already exists.
        DevstrapError: Unknown kind, or the skeleton could not be built.
            A half-built directory is removed.
    """
    validate_name(name)
    try:
        kind = EnvKind(kind)
    except ValueError:
        raise DevstrapError(
            f"Unknown environment type '{kind}' (choose from {', '.join(k.value for k in EnvKind)})"
        ) from None

    root = environment_root(name, environments_dir)
    if root.exists():
        raise AlreadyExistsError(f"Environment '{name}' already exists")

    logger.info("Creating environment '%s' of type '%s'...", name, kind.value)
    root.mkdir(parents=True)
    record = EnvironmentRecord(name=name, kind=kind.value, created_at=date.today(), root=root)

    try:
        record.meta_file.write_text(record.to_meta(), encoding="utf-8")
        _SKELETONS[kind](root, name)

        script = render_activation_script(build_activation_script(kind, name))
        record.activate_script.write_text(script, encoding="utf-8")
        record.activate_script.chmod(ACTIVATE_MODE)
    except (DevstrapError, OSError, subprocess.SubprocessError):
        shutil.rmtree(root, ignore_errors=True)
        raise

    _audit("create", name, f"Created {kind.value} environment '{name}'", detail={"kind": kind.value})
    return record


def list_environments(environments_dir: Optional[Path] = None) -> list[EnvironmentRecord]:
    """All environment directories, sorted by name."""
    base = _environments_dir(environments_dir)
    if not base.is_dir():
        return []
    return [read_record(p) for p in sorted(base.iterdir()) if p.is_dir()]


def get(name: str, environments_dir: Optional[Path] = None) -> EnvironmentRecord:
    """Record for *name*.

    Raises:
        NotFoundError: No such environment directory.
    """
    root = environment_root(name, environments_dir)
    if not root.is_dir():
        raise NotFoundError(f"Environment '{name}' does not exist")
    return read_record(root)


def activate(name: str, environments_dir: Optional[Path] = None) -> Path:
    """Path of *name*'s activation script (to be sourced by the caller).

    Raises:
        NotFoundError: Environment or script missing.
    """
    record = get(name, environments_dir)
    if not record.activate_script.is_file():
        raise NotFoundError(f"Activation script for '{name}' not found")
    return record.activate_script


def remove(
    name: str,
    environments_dir: Optional[Path] = None,
    confirm: Optional[Callable[[str], bool]] = None,
) -> bool:
    """Delete environment *name* and everything under it.

    Args:
        confirm: Asked before deleting; nothing is removed unless it
            returns True.  None means no confirmation is possible, which
            also removes nothing.

    Returns:
        True if the environment was removed, False if not confirmed.

    Raises:
        NotFoundError: No such environment.
    """
    record = get(name, environments_dir)

    question = f"Are you sure you want to remove environment '{name}'? This cannot be undone."
    if confirm is None or not confirm(question):
        logger.info("Removal of '%s' cancelled", name)
        return False

    shutil.rmtree(record.root)
    logger.info("Environment '%s' removed", name)
    _audit("remove", name, f"Removed environment '{name}'", detail={"kind": record.kind})
    return True


def activation_context(name: str, environments_dir: Optional[Path] = None) -> ActivationContext:
    """In-process activation of *name* (kind ``unknown`` activates as generic)."""
    record = get(name, environments_dir)
    try:
        kind = EnvKind(record.kind)
    except ValueError:
        kind = EnvKind.GENERIC
    return ActivationContext(build_activation_script(kind, name), record.root)


def create_python_project(name: str, project_type: str = "app", parent: Optional[Path] = None) -> Path:
    """Scaffold a Python project with ``uv init`` and give it a ``.venv``.

    Raises:
        DevstrapError: uv missing, unknown project type, or uv failed.
    """
    if not name:
        raise DevstrapError("Project name is required")
    if project_type not in PROJECT_TYPES:
        raise DevstrapError(f"Unknown project type '{project_type}' (choose from {', '.join(PROJECT_TYPES)})")
    if not shutil.which("uv"):
        raise DevstrapError("uv is not installed. Please install uv first.")

    cwd = parent or Path.cwd()
    args = ["init", name]
    if project_type != "app":
        args.insert(1, f"--{project_type}")

    logger.info("Creating Python project '%s' (%s)...", name, project_type)
    result = run_uv(*args, cwd=cwd)
    if result.returncode != 0:
        raise DevstrapError(f"Failed to create project: {result.stderr.strip()}")

    project = cwd / name
    result = run_uv("venv", cwd=project)
    if result.returncode != 0:
        raise DevstrapError(f"Failed to create virtual environment: {result.stderr.strip()}")

    _audit("python_project", name, f"Created Python {project_type} project", detail={"path": str(project)})
    return project
