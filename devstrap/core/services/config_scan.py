"""
Dotfile discovery — find well-known config files in HOME and adopt them.

Adopting a file moves its content under version control:

    ~/.gitconfig  →  copied to  configs/git/.gitconfig
                  →  backed up  ~/.gitconfig.backup-<ts>
                  →  replaced by a symlink into configs/

Symlinks are reported but never touched.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from devstrap.core.services.audit_helpers import make_auditor
from devstrap.core.services.backup import backup

logger = logging.getLogger(__name__)

_audit = make_auditor("config")

COMMON_FILES = (
    ".zshrc",
    ".bashrc",
    ".bash_profile",
    ".profile",
    ".gitconfig",
    ".gitignore_global",
    ".vimrc",
    ".tmux.conf",
)

COMMON_DIRS = (
    ".config",
    ".local/share",
    "Library/Application Support/Code/User",
)


def categorize(filename: str) -> str:
    """Repository sub-directory a dotfile belongs in."""
    if filename.startswith((".zsh", ".bash")) or filename == ".profile":
        return "shell"
    if filename.startswith(".git"):
        return "git"
    if filename.startswith(".vim"):
        return "vim"
    if filename.startswith(".tmux"):
        return "tmux"
    return "misc"


@dataclass
class ScanResult:
    symlinks: dict[str, str] = field(default_factory=dict)        # home path → link target
    files: list[str] = field(default_factory=list)                # regular files found
    adopted: dict[str, str] = field(default_factory=dict)         # home path → repo path
    directories: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symlinks": self.symlinks,
            "files": self.files,
            "adopted": self.adopted,
            "directories": self.directories,
        }


def adopt_file(home_file: Path, configs_dir: Path) -> Path:
    """Copy *home_file* into the repository and symlink it back.

    Returns:
        The repository path the home file now points to.
    """
    category = categorize(home_file.name)
    repo_file = configs_dir / category / home_file.name
    repo_file.parent.mkdir(parents=True, exist_ok=True)

    shutil.copy2(home_file, repo_file)
    backup(home_file)
    home_file.unlink()
    home_file.symlink_to(repo_file.absolute())

    logger.info("Adopted %s → %s", home_file, repo_file)
    _audit("adopt", home_file.name, f"{home_file} now links to {repo_file}")
    return repo_file


def scan_home(
    home: Path,
    configs_dir: Path,
    confirm: Callable[[Path], bool] | None = None,
) -> ScanResult:
    """Look for common dotfiles and directories under *home*.

    Args:
        home: Directory to scan.
        configs_dir: Repository configs directory adopted files go to.
        confirm: Asked once per regular file; adopt when it returns True.
            None means report only.
    """
    result = ScanResult()

    for name in COMMON_FILES:
        path = home / name
        if path.is_symlink():
            result.symlinks[str(path)] = str(path.readlink())
            continue
        if not path.is_file():
            continue

        result.files.append(str(path))
        if confirm is not None and confirm(path):
            result.adopted[str(path)] = str(adopt_file(path, configs_dir))

    for rel in COMMON_DIRS:
        path = home / rel
        if not path.is_dir():
            continue
        children: list[str] = []
        if rel == ".config":
            children = sorted(p.name for p in path.iterdir() if p.is_dir())
        result.directories[str(path)] = children

    return result
