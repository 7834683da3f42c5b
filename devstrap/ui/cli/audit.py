"""
CLI command for the audit ledger.

Usage::

    devstrap audit
    devstrap audit -n 50 --component credentials
    devstrap audit --json
"""

from __future__ import annotations

import json

import click

from devstrap.ui.cli.helpers import info

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.command("audit")
@click.option("--limit", "-n", default=20, show_default=True, type=click.IntRange(min=1),
              help="Number of entries to show.")
@click.option("--component", type=click.Choice(["config", "credentials", "env"]),
              help="Only entries of this component.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def audit(limit: int, component: str | None, as_json: bool) -> None:
    """Show what devstrap recently changed (newest last)."""
    from devstrap.core.context import get_settings
    from devstrap.core.persistence.audit import AuditWriter

    writer = AuditWriter(get_settings().audit_file)
    entries = writer.read_recent(limit, component)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        info(f"No audit entries in {writer.path}")
        return

    for e in entries:
        stamp = e.timestamp[:19].replace("T", " ")
        status = click.style(e.status, fg=_STATUS_COLORS.get(e.status))
        click.echo(f"{stamp}  {e.component:<11} {e.operation:<14} {e.target:<16} {status}  {e.summary}")
