"""
Atomic file writes — write to a temp file beside the target, then rename.

A crash or interrupt leaves either the old file or the new one, never a
half-written target.  At worst a ``.<name>.*.tmp`` file stays behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: Path, data: bytes, *, mode: int | None = None) -> None:
    """Atomically replace *path* with *data*.

    Args:
        path: Target file.  Parent directories are created.
        data: Full new content.
        mode: Permission bits applied to the temp file before the rename,
            so the target never exists with looser permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, path)
        logger.debug("Wrote %s (%d bytes)", path, len(data))
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def atomic_write_text(path: Path, text: str, *, mode: int | None = None) -> None:
    atomic_write_bytes(path, text.encode("utf-8"), mode=mode)
