"""
Shared CLI plumbing — interactive fallbacks and error exits.

Missing positional arguments are prompted for only when stdin is a
terminal; scripts get a usage error (exit 2) instead of a hang.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click


def interactive() -> bool:
    return sys.stdin.isatty()


def require(value: str | None, label: str, *, hide_input: bool = False) -> str:
    """Return *value*, prompting for it on a TTY when missing."""
    if value:
        return value
    if interactive():
        answer = click.prompt(label, hide_input=hide_input, err=True)
        if answer:
            return answer
    raise click.UsageError(f"Missing argument: {label}")


def fail(message: object) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def success(message: str) -> None:
    click.secho(f"✅ {message}", fg="green", err=True)


def info(message: str) -> None:
    click.secho(f"ℹ️  {message}", fg="cyan", err=True)

