"""
lspinstall — CLI entrypoint.

Usage:
    python -m lspinstall.main --help
    python -m lspinstall.main servers list
    python -m lspinstall.main servers install pyls
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from lspinstall import __version__
from lspinstall.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="lspinstall")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to lspinstall.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """lspinstall — install the executables your language-server clients need."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("LSPI_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("LSPI_LOG_FILE"),
        log_file_level=os.environ.get("LSPI_LOG_FILE_LEVEL"),
    )


from lspinstall.ui.cli.servers import servers  # noqa: E402

cli.add_command(servers)


if __name__ == "__main__":
    cli()
