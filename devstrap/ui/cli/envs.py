"""
CLI commands for development environments.

Thin wrappers over ``devstrap.core.services.environments``.  ``activate``
cannot change the calling shell; it prints the ``source`` line instead.
"""

from __future__ import annotations

import json
import subprocess
import sys

import click

from devstrap.core.errors import DevstrapError
from devstrap.ui.cli.helpers import fail, info, interactive, require, success


def _choose_kind() -> str:
    """Numbered kind menu (TTY only)."""
    from devstrap.core.services.environments import KIND_CHOICES

    if not interactive():
        raise click.UsageError("Missing argument: environment type")

    click.echo("Select environment type:", err=True)
    labels = {"python": "Python (uv)", "node": "Node.js", "cpp": "C++", "generic": "Generic"}
    for i, kind in enumerate(KIND_CHOICES, 1):
        click.echo(f"{i}) {labels[kind.value]}", err=True)
    choice = click.prompt(
        f"Enter choice (1-{len(KIND_CHOICES)})",
        type=click.IntRange(1, len(KIND_CHOICES)),
        err=True,
    )
    return KIND_CHOICES[choice - 1].value


def _show_environments() -> None:
    from devstrap.core.services.environments import list_environments

    for rec in list_environments():
        created = rec.created_at.isoformat() if rec.created_at else "?"
        click.echo(f"- {rec.name} (Type: {rec.kind}, Created: {created})", err=True)


@click.group("env")
def env() -> None:
    """Development environments — create, activate, remove."""


@env.command("create")
@click.argument("name", required=False)
@click.argument("kind", required=False, type=click.Choice(["python", "node", "cpp", "generic"]))
def create_cmd(name: str | None, kind: str | None) -> None:
    """Create environment NAME of KIND (python, node, cpp, generic)."""
    from devstrap.core.services.environments import create

    name = require(name, "Environment name")
    kind = kind or _choose_kind()

    try:
        record = create(name, kind)
    except DevstrapError as e:
        fail(e)

    success(f"Environment '{name}' created successfully")
    info(f"To activate, run: source {record.activate_script}")


@env.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_cmd(as_json: bool) -> None:
    """List all environments."""
    from devstrap.core.services.environments import list_environments

    records = list_environments()

    if as_json:
        click.echo(json.dumps([rec.model_dump(mode="json") for rec in records], indent=2))
        return

    if not records:
        info("No environments found")
        return

    click.secho("Development Environments", bold=True)
    for rec in records:
        if rec.kind == "unknown":
            click.echo(f"- {rec.name} (Type: unknown)")
        else:
            created = rec.created_at.isoformat() if rec.created_at else "?"
            click.echo(f"- {rec.name} (Type: {rec.kind}, Created: {created})")


@env.command("activate")
@click.argument("name", required=False)
def activate_cmd(name: str | None) -> None:
    """Show how to activate environment NAME."""
    from devstrap.core.services.environments import activate

    if not name and interactive():
        click.echo("Available environments:", err=True)
        _show_environments()
    name = require(name, "Environment name to activate")

    try:
        script = activate(name)
    except DevstrapError as e:
        fail(e)

    info(f"To activate, run: source {script}")
    click.echo(str(script))


@env.command("remove")
@click.argument("name", required=False)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def remove_cmd(name: str | None, yes: bool) -> None:
    """Remove environment NAME and everything in it."""
    from devstrap.core.services.environments import remove

    if not name and interactive():
        click.echo("Available environments:", err=True)
        _show_environments()
    name = require(name, "Environment name to remove")

    if yes:
        confirm = lambda question: True  # noqa: E731
    elif interactive():
        confirm = lambda question: click.confirm(question, default=False, err=True)  # noqa: E731
    else:
        confirm = None

    try:
        removed = remove(name, confirm=confirm)
    except DevstrapError as e:
        fail(e)

    if removed:
        success(f"Environment '{name}' removed successfully")
    else:
        info("Operation cancelled")


@env.command("python")
@click.argument("name", required=False)
@click.argument("project_type", metavar="[app|lib|package]", required=False, default="app",
                type=click.Choice(["app", "lib", "package"]))
def python_cmd(name: str | None, project_type: str) -> None:
    """Create a Python project NAME with uv."""
    from devstrap.core.services.environments import create_python_project

    name = require(name, "Project name")
    try:
        project = create_python_project(name, project_type)
    except DevstrapError as e:
        fail(e)

    success(f"Python project '{name}' created successfully")
    info("To activate the virtual environment, run: source .venv/bin/activate")
    info(f"Directory: {project}")


@env.command("exec", context_settings={"ignore_unknown_options": True})
@click.argument("name")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def exec_cmd(name: str, command: tuple[str, ...]) -> None:
    """Run COMMAND with environment NAME activated."""
    from devstrap.core.services.environments import activation_context

    try:
        with activation_context(name):
            result = subprocess.run(list(command))
    except FileNotFoundError as e:
        fail(f"Command not found: {e.filename}")
    except DevstrapError as e:
        fail(e)
    sys.exit(result.returncode)
