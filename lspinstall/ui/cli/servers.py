"""
CLI commands for language-server install resolution.

Thin wrappers over ``lspinstall.core.services.server_install``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from lspinstall.core.services.server_install import (
    ResolutionEngine,
    ServerInstallError,
    SubprocessInstaller,
)
from lspinstall.ui.cli.prompter import ClickPrompter


def _make_engine(ctx: click.Context, *, assume_yes: bool = False, quiet: bool = False) -> ResolutionEngine:
    """Load settings and build an engine, exiting cleanly on bad config."""
    from lspinstall.core.config.loader import ConfigError, load_settings

    config_path: Path | None = ctx.obj.get("config_path")
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    prompter = ClickPrompter(
        assume_yes=assume_yes,
        quiet=quiet or ctx.obj.get("quiet", False),
    )
    return ResolutionEngine(
        settings,
        installer=SubprocessInstaller(npm_command=settings.npm_command),
        prompter=prompter,
    )


@click.group()
def servers() -> None:
    """Language servers — list, show, install, reindex."""


# ── Observe ─────────────────────────────────────────────────────


@servers.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_servers(ctx: click.Context, as_json: bool) -> None:
    """List every client id found in the configuration modules."""
    engine = _make_engine(ctx, quiet=as_json)
    entries = engine.index.entries()

    if as_json:
        click.echo(json.dumps({sid: str(path) for sid, path in sorted(entries.items())}, indent=2))
        return

    if not entries:
        click.secho("⚠️  No clients found — check 'modules' in lspinstall.yml", fg="yellow")
        return

    click.secho(f"🧩 Clients ({len(entries)}):", fg="cyan", bold=True)
    for sid, path in sorted(entries.items()):
        click.echo(f"   {sid:<30} {path.name}")


@servers.command()
@click.argument("server_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, server_id: str, as_json: bool) -> None:
    """Show what is known about SERVER_ID, without installing anything."""
    engine = _make_engine(ctx, quiet=as_json)
    info = engine.describe(server_id)

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.secho(f"🔎 {server_id}", fg="cyan", bold=True)
    for key in ("static_spec", "file", "connection", "command_spec", "group", "links",
                "executable", "installed_at", "install_command", "docs_error"):
        if key in info:
            click.echo(f"   {key:<16} {info[key]}")


# ── Act ─────────────────────────────────────────────────────────


@servers.command()
@click.argument("server_id")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Don't ask for confirmation.")
@click.option("--dry-run", is_flag=True, help="Only show what would be done.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, server_id: str, assume_yes: bool, dry_run: bool, as_json: bool) -> None:
    """Install the executable SERVER_ID needs."""
    engine = _make_engine(ctx, assume_yes=assume_yes, quiet=as_json)

    try:
        outcome = engine.plan(server_id) if dry_run else engine.resolve(server_id)
    except ServerInstallError as e:
        if as_json:
            click.echo(json.dumps({"server_id": server_id, "error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
        return

    if outcome.status == "already_installed":
        click.secho(f"✅ {outcome.message}", fg="green")
    elif outcome.status == "declined":
        click.secho("⏭️  Skipped", fg="yellow")
    elif outcome.status == "planned":
        action = outcome.instruction.describe() if outcome.instruction else (outcome.url or outcome.message)
        click.secho(f"📝 Would run: {action}", fg="cyan")
    elif outcome.url:
        click.secho(f"🌐 Opened {outcome.url}", fg="cyan")
    else:
        action = outcome.instruction.describe() if outcome.instruction else outcome.message
        click.secho(f"📦 Started: {action}", fg="green")


@servers.command()
@click.pass_context
def reindex(ctx: click.Context) -> None:
    """Rescan configuration modules for client ids."""
    engine = _make_engine(ctx)
    entries = engine.reindex()
    click.secho(f"✅ {len(entries)} clients indexed", fg="green")
