"""
devstrap — CLI entrypoint.

Usage:
    devstrap --help
    devstrap config install shell
    devstrap credentials add OPENAI_API_KEY sk-... ai-tools
    devstrap env create myproject python
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from devstrap import __version__
from devstrap.core.observability.logging_config import ENV_FILE, ENV_FILE_LEVEL, resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="devstrap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to devstrap.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devstrap — dotfiles, credentials and dev environments for one workstation."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not debug,
    )

    # Register settings in core context (used by every core service)
    from devstrap.core.config.loader import load_settings
    from devstrap.core.context import set_settings
    from devstrap.core.errors import ConfigError

    try:
        set_settings(load_settings(ctx.obj["config_path"]))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


from devstrap.ui.cli.audit import audit
from devstrap.ui.cli.configs import config
from devstrap.ui.cli.credentials import credentials
from devstrap.ui.cli.envs import env

cli.add_command(config)
cli.add_command(credentials)
cli.add_command(env)
cli.add_command(audit)


if __name__ == "__main__":
    cli()
