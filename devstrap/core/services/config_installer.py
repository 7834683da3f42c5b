"""
Config installer — apply a registry's entries to the filesystem.

For each entry, in registry order:

    1. expand the target ($HOME, $XDG_CONFIG_HOME, ~ ...)
    2. fail the entry if the source is missing
    3. create the target's parent directories
    4. dispatch on the strategy (symlink / copy / template)

Every destructive step is preceded by a backup.  One failing entry never
stops the others: ``install`` always returns a report unless the registry
itself cannot be loaded.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from devstrap.core.config.paths import expand_target
from devstrap.core.errors import DevstrapError, SourceMissingError
from devstrap.core.models.registry import ConfigEntry, Strategy
from devstrap.core.services.audit_helpers import make_auditor
from devstrap.core.services.backup import backup
from devstrap.core.services.registry_store import load_registry

logger = logging.getLogger(__name__)

_audit = make_auditor("config")

Prompter = Callable[[str], str]

PLACEHOLDER_RE = re.compile(r"\{\{([^}]*)\}\}")


# ═══════════════════════════════════════════════════════════════════
#  Reports
# ═══════════════════════════════════════════════════════════════════


@dataclass
class EntryResult:
    """Outcome of installing one entry."""

    name: str
    outcome: str                    # created, updated, replaced, unchanged, copied, templated, failed
    target: str = ""
    backup: str | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome != "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome,
            "target": self.target,
            "backup": self.backup,
            "error": self.error,
        }


@dataclass
class InstallReport:
    registry: str
    results: list[EntryResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        return "failed" if self.succeeded == 0 else "partial"

    def to_dict(self) -> dict[str, Any]:
        return {
            "registry": self.registry,
            "status": self.status,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class CheckResult:
    name: str
    ok: bool
    target: str = ""
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "ok": self.ok, "target": self.target, "reason": self.reason}


@dataclass
class CheckReport:
    registry: str
    results: list[CheckResult] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return all(r.ok for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "registry": self.registry,
            "all_ok": self.all_ok,
            "results": [r.to_dict() for r in self.results],
        }


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════


def _configs_dir(configs_dir: Path | None) -> Path:
    if configs_dir is not None:
        return configs_dir
    from devstrap.core.context import get_settings

    return get_settings().configs_dir


def resolve_source(entry: ConfigEntry, configs_dir: Path) -> Path:
    """Absolute source path; relative sources live under *configs_dir*."""
    source = Path(os.path.expanduser(entry.source))
    return source if source.is_absolute() else configs_dir / source


def _points_to(link: Path, source: Path) -> bool:
    """Whether symlink *link* resolves to the same path as *source*."""
    return os.path.realpath(link) == os.path.realpath(source)


def _remove(path: Path) -> None:
    """Delete whatever is at *path* (link, file or tree)."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _backup_if_present(target: Path) -> Path | None:
    if target.exists() or target.is_symlink():
        return backup(target)
    return None


def discover_placeholders(text: str) -> list[str]:
    """Distinct ``{{NAME}}`` placeholder names in *text*, sorted."""
    return sorted({m.group(1) for m in PLACEHOLDER_RE.finditer(text)})


def render_template(text: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{NAME}}`` that has a value; leave the rest."""

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        return values[name] if name in values else match.group(0)

    return PLACEHOLDER_RE.sub(_sub, text)


# ═══════════════════════════════════════════════════════════════════
#  Strategies
# ═══════════════════════════════════════════════════════════════════


def _install_symlink(source: Path, target: Path, prompter: Prompter | None) -> tuple[str, Path | None]:
    if target.is_symlink():
        if _points_to(target, source):
            logger.info("Symlink already correct: %s -> %s", target, source)
            return "unchanged", None
        logger.warning("Symlink points elsewhere: %s -> %s", target, os.readlink(target))
        saved = backup(target)
        target.unlink()
        target.symlink_to(source)
        return "updated", saved

    if target.exists():
        saved = backup(target)
        _remove(target)
        target.symlink_to(source)
        return "replaced", saved

    target.symlink_to(source)
    return "created", None


def _install_copy(source: Path, target: Path, prompter: Prompter | None) -> tuple[str, Path | None]:
    saved = _backup_if_present(target)
    _remove(target)
    if source.is_dir():
        shutil.copytree(source, target, symlinks=True)
    else:
        shutil.copy2(source, target)
    return "copied", saved


def _install_template(source: Path, target: Path, prompter: Prompter | None) -> tuple[str, Path | None]:
    if source.is_dir():
        raise DevstrapError(f"Template source must be a file: {source}")

    try:
        text = source.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DevstrapError(f"Template source is not UTF-8: {source} ({e.reason} at byte {e.start})") from e
    names = discover_placeholders(text)
    if not names:
        outcome, saved = _install_copy(source, target, prompter)
        return outcome, saved

    if prompter is None:
        raise DevstrapError(
            f"Template {source.name} needs values for {', '.join(names)} but no prompt is available"
        )

    saved = _backup_if_present(target)
    logger.info("Template %s requires: %s", source.name, ", ".join(names))
    values = {name: prompter(name) for name in names}
    rendered = render_template(text, values)

    # Render into a scratch file beside the target, then move it into place
    fd, scratch_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    scratch = Path(scratch_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(rendered)
        shutil.copymode(source, scratch)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        os.replace(scratch, target)
    except Exception:
        scratch.unlink(missing_ok=True)
        raise
    return "templated", saved


_STRATEGIES: dict[Strategy, Callable[[Path, Path, Prompter | None], tuple[str, Path | None]]] = {
    Strategy.SYMLINK: _install_symlink,
    Strategy.COPY: _install_copy,
    Strategy.TEMPLATE: _install_template,
}


# ═══════════════════════════════════════════════════════════════════
#  Install / check
# ═══════════════════════════════════════════════════════════════════


def install_entry(
    entry: ConfigEntry,
    configs_dir: Path,
    *,
    prompter: Prompter | None = None,
    strict: bool = False,
    environ: Mapping[str, str] | None = None,
) -> EntryResult:
    """Install a single entry.

    Raises:
        DevstrapError: Source missing, unknown strategy, backup failure,
            unresolved variable (strict) or template without a prompter.
        OSError: Filesystem failures while linking or copying.
    """
    strategy = entry.known_strategy
    if strategy is None:
        raise DevstrapError(f"Unknown strategy '{entry.strategy}' for entry {entry.name}")

    target = Path(expand_target(entry.target, environ, strict=strict))
    source = resolve_source(entry, configs_dir)

    if not source.exists():
        raise SourceMissingError(f"Source does not exist: {source}")

    target.parent.mkdir(parents=True, exist_ok=True)

    outcome, saved = _STRATEGIES[strategy](source, target, prompter)
    logger.info("%s: %s (%s -> %s)", entry.name, outcome, target, source)
    return EntryResult(
        name=entry.name,
        outcome=outcome,
        target=str(target),
        backup=str(saved) if saved else None,
    )


def install(
    registry_name: str,
    *,
    registry_dir: Path | None = None,
    configs_dir: Path | None = None,
    prompter: Prompter | None = None,
    strict: bool = False,
    environ: Mapping[str, str] | None = None,
) -> InstallReport:
    """Install every entry of *registry_name*, sequentially, in order.

    Raises:
        NotFoundError / ConfigError: Only if the registry cannot be loaded.
    """
    registry = load_registry(registry_name, registry_dir)
    base = _configs_dir(configs_dir).absolute()
    report = InstallReport(registry=registry_name)

    for entry in registry.entries:
        try:
            result = install_entry(entry, base, prompter=prompter, strict=strict, environ=environ)
        except (DevstrapError, OSError) as e:
            logger.error("%s: %s", entry.name, e)
            result = EntryResult(
                name=entry.name,
                outcome="failed",
                target=entry.target,
                error=str(e),
            )
        report.results.append(result)

    _audit(
        "install", registry_name,
        f"{report.succeeded}/{len(report.results)} entries installed",
        status=report.status,
        detail={"entries": {r.name: r.outcome for r in report.results}},
    )
    return report


def check_entry(entry: ConfigEntry, configs_dir: Path, environ: Mapping[str, str] | None = None) -> CheckResult:
    """Compare one entry's on-disk state with its declaration (read-only)."""
    strategy = entry.known_strategy
    target = Path(expand_target(entry.target, environ))

    if strategy is None:
        return CheckResult(entry.name, False, str(target), f"Unknown strategy '{entry.strategy}'")

    if strategy is Strategy.SYMLINK:
        source = resolve_source(entry, configs_dir)
        if not target.is_symlink():
            return CheckResult(entry.name, False, str(target), "Not a symlink")
        if not _points_to(target, source):
            return CheckResult(
                entry.name, False, str(target),
                f"Symlink points to wrong location: {os.readlink(target)}",
            )
        return CheckResult(entry.name, True, str(target), f"Symlink is correct -> {source}")

    if target.exists():
        return CheckResult(entry.name, True, str(target), "File/directory exists")
    return CheckResult(entry.name, False, str(target), "File/directory does not exist")


def check(
    registry_name: str,
    *,
    registry_dir: Path | None = None,
    configs_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> CheckReport:
    """Verify every entry of *registry_name* without changing anything."""
    registry = load_registry(registry_name, registry_dir)
    base = _configs_dir(configs_dir).absolute()
    report = CheckReport(registry=registry_name)

    for entry in registry.entries:
        result = check_entry(entry, base, environ)
        if not result.ok:
            logger.warning("%s: %s", entry.name, result.reason)
        report.results.append(result)

    _audit(
        "check", registry_name,
        "all entries correct" if report.all_ok else "some entries need attention",
        status="ok" if report.all_ok else "failed",
    )
    return report
