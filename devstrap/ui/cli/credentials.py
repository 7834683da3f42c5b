"""
CLI commands for the scoped credential store.

Thin wrappers over ``devstrap.core.services.credentials``.  Prompts and
status messages go to stderr so ``get`` and ``load`` stay scriptable::

    eval "$(devstrap credentials load OPENAI ai-tools)"
"""

from __future__ import annotations

import shlex
from pathlib import Path

import click

from devstrap.core.errors import DevstrapError
from devstrap.ui.cli.helpers import fail, info, interactive, require, success

MAIN_ENV = "main"


def _store():
    """Credential store wired to the keychain and click prompts."""
    from devstrap.core.context import get_settings
    from devstrap.core.services.credentials import CredentialStore
    from devstrap.core.services.password import KeychainPasswordSource

    settings = get_settings()

    def _prompt(message: str) -> str:
        return click.prompt(message, hide_input=True, err=True)

    def _confirm(message: str) -> bool:
        return interactive() and click.confirm(message, default=False, err=True)

    source = KeychainPasswordSource(settings.keychain_prefix, prompt=_prompt, confirm=_confirm)
    return CredentialStore(settings.credentials_dir, password_provider=source)


@click.group("credentials")
def credentials() -> None:
    """Encrypted API keys, one password-protected bucket per environment."""


@credentials.command("environments")
def environments_cmd() -> None:
    """List all credential environments."""
    names = _store().environments()
    if not names:
        info("No credential environments found")
        return
    for name in names:
        click.echo(f"- {name}")


@credentials.command("create_env")
@click.argument("name", required=False)
def create_env_cmd(name: str | None) -> None:
    """Create an empty credential environment NAME."""
    name = require(name, "New environment name")
    try:
        _store().create(name)
    except DevstrapError as e:
        fail(e)
    success(f"Created new environment '{name}'")


@credentials.command("list")
@click.argument("environment", required=False, default=MAIN_ENV)
def list_cmd(environment: str) -> None:
    """List keys (values masked) in ENVIRONMENT."""
    try:
        keys = _store().list_keys(environment)
    except DevstrapError as e:
        fail(e)

    if not keys:
        info(f"No API keys stored in '{environment}' environment")
        return
    click.secho(f"API Keys in '{environment}' Environment", bold=True)
    for key, masked in keys.items():
        click.echo(f"{key}: {masked}")


@credentials.command("add")
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.argument("environment", required=False, default=MAIN_ENV)
def add_cmd(key: str | None, value: str | None, environment: str) -> None:
    """Add or update KEY with VALUE in ENVIRONMENT."""
    key = require(key, "API key name (e.g. OPENAI_API_KEY)")
    value = require(value, "API key value", hide_input=True)
    try:
        _store().add_key(key, value, environment)
    except DevstrapError as e:
        fail(e)
    success(f"API key '{key}' added/updated in '{environment}' environment")


@credentials.command("get")
@click.argument("key", required=False)
@click.argument("environment", required=False, default=MAIN_ENV)
def get_cmd(key: str | None, environment: str) -> None:
    """Print the value of KEY from ENVIRONMENT."""
    key = require(key, "API key name to retrieve")
    try:
        value = _store().get_key(key, environment)
    except DevstrapError as e:
        fail(e)
    click.echo(value)


@credentials.command("remove")
@click.argument("key", required=False)
@click.argument("environment", required=False, default=MAIN_ENV)
def remove_cmd(key: str | None, environment: str) -> None:
    """Remove KEY from ENVIRONMENT."""
    key = require(key, "API key name to remove")
    try:
        _store().remove_key(key, environment)
    except DevstrapError as e:
        fail(e)
    success(f"API key '{key}' removed from '{environment}' environment")


@credentials.command("load")
@click.argument("filter_", metavar="[FILTER]", required=False)
@click.argument("environment", required=False, default=MAIN_ENV)
def load_cmd(filter_: str | None, environment: str) -> None:
    """Print ``export`` lines for keys containing FILTER (eval them)."""
    loaded: dict[str, str] = {}
    try:
        _store().load_into_environment(filter_, environment, environ=loaded)
    except DevstrapError as e:
        fail(e)

    if not loaded:
        info(f"No API keys to load from '{environment}' environment")
        return
    for key, value in loaded.items():
        click.echo(f"export {key}={shlex.quote(value)}")


@credentials.command("export")
@click.argument("file", required=False, default=".env", type=click.Path(dir_okay=False))
@click.argument("filter_", metavar="[FILTER]", required=False)
@click.argument("environment", required=False, default=MAIN_ENV)
@click.option("--force", "-f", is_flag=True, help="Overwrite FILE without asking.")
def export_cmd(file: str, filter_: str | None, environment: str, force: bool) -> None:
    """Write keys containing FILTER to a .env FILE (mode 0600)."""
    path = Path(file)
    if path.exists() and not force:
        if not interactive() or not click.confirm(f"File {path} already exists. Overwrite?", err=True):
            info("Operation cancelled")
            return

    try:
        names = _store().export_to_file(path, filter_, environment, overwrite=True)
    except DevstrapError as e:
        fail(e)

    if not names:
        info(f"No keys to export from '{environment}' environment")
        return
    success(f"Created {path} with {len(names)} key(s) from '{environment}' environment")


@credentials.command("copy")
@click.argument("source")
@click.argument("target")
@click.argument("filter_", metavar="[FILTER]", required=False)
def copy_cmd(source: str, target: str, filter_: str | None) -> None:
    """Copy keys containing FILTER from SOURCE into TARGET (SOURCE wins)."""
    try:
        names = _store().copy_keys(source, target, filter_)
    except DevstrapError as e:
        fail(e)
    success(f"Copied {len(names)} key(s) from '{source}' to '{target}' environment")
