"""
CLI commands for the config registry and installer.

Thin wrappers over ``devstrap.core.services.config_installer``,
``registry_store`` and ``config_scan``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devstrap.core.errors import DevstrapError
from devstrap.ui.cli.helpers import fail, info, interactive, success

_OUTCOME_ICONS = {
    "created": "🔗",
    "updated": "🔁",
    "replaced": "🔁",
    "unchanged": "✓",
    "copied": "📄",
    "templated": "📝",
    "failed": "❌",
}


def _template_prompter():
    """Prompt for template placeholders, or None when not on a TTY."""
    if not interactive():
        return None

    def _ask(name: str) -> str:
        return click.prompt(f"Enter value for {name}", err=True)

    return _ask


@click.group("config")
def config() -> None:
    """Config registries — install, check and discover dotfiles."""


@config.command("install")
@click.argument("registry")
@click.option("--strict", is_flag=True, help="Fail entries whose target has undefined variables.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def install_cmd(registry: str, strict: bool, as_json: bool) -> None:
    """Install every entry of REGISTRY (symlink, copy or template)."""
    from devstrap.core.services.config_installer import install

    try:
        report = install(registry, prompter=_template_prompter(), strict=strict)
    except DevstrapError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    click.secho(f"\n📦 {registry}", fg="cyan", bold=True)
    for r in report.results:
        icon = _OUTCOME_ICONS.get(r.outcome, "•")
        color = "red" if not r.ok else None
        click.secho(f"   {icon} {r.name}: {r.outcome}", fg=color)
        if r.backup:
            click.echo(f"      backup: {r.backup}")
        if r.error:
            click.echo(f"      {r.error}")

    click.echo()
    if report.failed:
        click.secho(
            f"⚠️  {report.succeeded}/{len(report.results)} entries installed, {report.failed} failed",
            fg="yellow",
        )
    else:
        click.secho(f"✅ Registry '{registry}' installed", fg="green", bold=True)


@config.command("check")
@click.argument("registry")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def check_cmd(registry: str, as_json: bool) -> None:
    """Verify REGISTRY is installed correctly (read-only)."""
    from devstrap.core.services.config_installer import check

    try:
        report = check(registry)
    except DevstrapError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.all_ok else 1)

    for r in report.results:
        if r.ok:
            click.secho(f"   ✓ {r.name}: {r.reason}", fg="green")
        else:
            click.secho(f"   ✗ {r.name}: {r.reason}", fg="red")
            click.echo(f"      target: {r.target}")

    click.echo()
    if not report.all_ok:
        click.secho("❌ Some configurations need attention", fg="red", bold=True)
        sys.exit(1)
    click.secho("✅ All configurations are correctly installed", fg="green", bold=True)


@config.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_cmd(as_json: bool) -> None:
    """List available registries."""
    from devstrap.core.services.registry_store import describe_registries

    registries = describe_registries()

    if as_json:
        click.echo(json.dumps(registries, indent=2))
        return

    if not registries:
        info("No registries found")
        return

    click.secho("Available registries:", bold=True)
    for reg in registries:
        if "error" in reg:
            click.secho(f"   ✗ {reg['name']}: {reg['error']}", fg="red")
            continue
        click.echo(f"   • {reg['name']}: {reg['title']} ({reg['entries']} entries)")
        if reg["description"]:
            click.echo(f"     {reg['description']}")


@config.command("scan")
@click.option("--yes", "-y", is_flag=True, help="Adopt every regular dotfile without asking.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def scan_cmd(yes: bool, as_json: bool) -> None:
    """Find dotfiles in HOME and offer to move them under version control."""
    from devstrap.core.config.paths import home_dir
    from devstrap.core.context import get_settings
    from devstrap.core.services.config_scan import scan_home

    if yes:
        confirm = lambda path: True  # noqa: E731
    elif interactive() and not as_json:
        confirm = lambda path: click.confirm(  # noqa: E731
            f"Add {path.name} to configuration repository?", default=False, err=True,
        )
    else:
        confirm = None

    try:
        result = scan_home(Path(home_dir()), get_settings().configs_dir, confirm)
    except (DevstrapError, OSError) as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    for path, target in result.symlinks.items():
        click.echo(f"   🔗 {path} -> {target}")
    for path in result.files:
        adopted = result.adopted.get(path)
        if adopted:
            success(f"{path} adopted as {adopted}")
        else:
            click.echo(f"   📄 {path}")
    for path, children in result.directories.items():
        click.echo(f"   📁 {path}")
        for child in children:
            click.echo(f"      - {child}")
