"""
Audit ledger — append-only record of what devstrap changed.

One JSON object per line (NDJSON) under
``$XDG_STATE_HOME/devstrap/audit.ndjson``.  Credential events carry key
names only; values never reach the ledger.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single ledger line."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    component: str = ""            # config, credentials, env
    operation: str = ""            # install, check, add_key, create, ...
    target: str = ""               # registry / environment name
    status: str = "ok"             # ok, partial, failed
    summary: str = ""
    detail: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Appends entries to, and reads them back from, one ledger file."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append *entry*.  I/O errors are logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.component, entry.operation)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first; corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries: list[AuditEntry] = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)
        return entries

    def read_recent(self, n: int = 20, component: str | None = None) -> list[AuditEntry]:
        """Last *n* entries, oldest first, optionally only those of *component*."""
        entries = self.read_all()
        if component:
            entries = [e for e in entries if e.component == component]
        return entries[-n:] if n > 0 else []
