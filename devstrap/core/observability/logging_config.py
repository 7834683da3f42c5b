"""
Logging configuration — one setup call per process.

``devstrap.main`` calls :func:`setup_logging` before any command runs;
modules only ever do ``logger = logging.getLogger(__name__)``.

Level precedence:
    --debug  >  --verbose  >  --quiet  >  DEVSTRAP_LOG_LEVEL  >  WARNING

A second, independent file sink is enabled with DEVSTRAP_LOG_FILE
(level from DEVSTRAP_LOG_FILE_LEVEL, defaulting to the console level).

Only handlers installed here are replaced on a second call; handlers
someone else attached to the root logger (pytest, an embedding app)
are left alone.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "DEVSTRAP_LOG_LEVEL"
ENV_FILE = "DEVSTRAP_LOG_FILE"
ENV_FILE_LEVEL = "DEVSTRAP_LOG_FILE_LEVEL"

# Console format by the most verbose level it applies to; anything
# quieter than INFO prints bare messages.
_CONSOLE_FORMATS: tuple[tuple[int, str, str], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_FMT_MINIMAL = "%(message)s"
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"

# keyring logs every backend it tries while resolving; the
# chainer logs its resolution order on every lookup.
_THIRD_PARTY_LEVELS = {
    "keyring": logging.WARNING,
    "keyring.backend": logging.WARNING,
    "keyring.backends.chainer": logging.ERROR,
}

_HANDLER_MARK = "_devstrap_handler"


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level name from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LEVEL, "WARNING")


def parse_level(level: str | int | None) -> int:
    """``"info"`` / ``"20"`` / ``20`` → 20; anything unrecognised → WARNING."""
    if isinstance(level, int):
        return level
    if not level:
        return logging.WARNING
    if level.isdigit():
        return int(level)
    return logging.getLevelNamesMapping().get(level.upper(), logging.WARNING)


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_FMT_MINIMAL)


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARK, True)
    return handler


def devstrap_handlers(logger: logging.Logger | None = None) -> list[logging.Handler]:
    """Handlers on *logger* (default root) that :func:`setup_logging` installed."""
    target = logger or logging.getLogger()
    return [h for h in target.handlers if getattr(h, _HANDLER_MARK, False)]


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of an extra file sink.
        log_file_level: Level for the file sink; defaults to ``level``.
        quiet_third_party: Apply ``_THIRD_PARTY_LEVELS`` unless the console
            is at DEBUG.
    """
    root = logging.getLogger()
    for old in devstrap_handlers(root):
        root.removeHandler(old)
        old.close()

    console_level = parse_level(level)
    console = _mark(logging.StreamHandler(sys.stderr))
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    root.addHandler(console)

    levels = [console_level]
    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        sink = _mark(logging.FileHandler(log_file, encoding="utf-8"))
        sink.setLevel(file_level)
        sink.setFormatter(logging.Formatter(_FMT_FILE, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(sink)
        levels.append(file_level)

    root.setLevel(min(levels))

    third_party = quiet_third_party and console_level > logging.DEBUG
    for name, pinned in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(pinned if third_party else logging.NOTSET)

    # The console handler can outlive the stream it was given
    logging.raiseExceptions = False
