"""
Backup service — copy a path aside before anything overwrites it.

    ~/.zshrc  →  ~/.zshrc.backup-20250101-120000

Files are copied with metadata, directories recursively, and symlinks
as links (the backup of a symlink is a symlink to the same place).
Timestamps have one-second resolution: two backups of the same path in
the same second overwrite each other.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from devstrap.core.errors import BackupError

logger = logging.getLogger(__name__)

BACKUP_MARKER = ".backup-"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def backup_path_for(path: Path, timestamp: str | None = None) -> Path:
    """Where a backup of *path* taken at *timestamp* (default: now) goes."""
    ts = timestamp or time.strftime(TIMESTAMP_FORMAT)
    return path.with_name(f"{path.name}{BACKUP_MARKER}{ts}")


def backup(path: Path) -> Path | None:
    """Copy *path* aside if it exists.

    Returns:
        The backup path, or None when there was nothing to back up.

    Raises:
        BackupError: If the copy failed.  Callers must not go on to
            overwrite *path*.
    """
    if not path.exists() and not path.is_symlink():
        return None

    dest = backup_path_for(path)
    try:
        if dest.is_symlink() or dest.is_file():
            dest.unlink()
        elif dest.is_dir():
            shutil.rmtree(dest)

        if path.is_symlink():
            dest.symlink_to(path.readlink())
        elif path.is_dir():
            shutil.copytree(path, dest, symlinks=True)
        else:
            shutil.copy2(path, dest)
    except OSError as e:
        raise BackupError(f"Failed to back up {path} to {dest}: {e}") from e

    logger.info("Backed up %s → %s", path, dest)
    return dest

