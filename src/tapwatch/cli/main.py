# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for the Tapwatch telemetry engine.
"""

import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console

from . import __version__
from .commands import config, ingest, repack, serve, status, trim
from .context import CliContext
from ..shared.config import Config

# Create console for rich output
console = Console()


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit"
)
@click.option(
    "--config-dir",
    envvar="TAPWATCH_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding config.yaml (default: ~/.tapwatch)"
)
@click.option(
    "--data-root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Override the data root from configuration"
)
@click.option(
    "--format",
    envvar="TAPWATCH_FORMAT",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Default output format"
)
@click.option(
    "--debug",
    envvar="TAPWATCH_DEBUG",
    is_flag=True,
    help="Enable debug mode"
)
@click.pass_context
def cli(ctx, version: bool, config_dir: Path, data_root: Path, format: str, debug: bool):
    """
    Tapwatch - telemetry aggregation and retention for beverage taps.

    Ingests fill-level updates, keeps a bounded recent history per tap,
    and bundles raw updates into daily archives.

    Examples:
        tapwatch serve
        tapwatch ingest update.json --api-key abc123
        tapwatch status Lunarville-beta
        tapwatch repack --all
    """
    if version:
        click.echo(f"Tapwatch version {__version__}")
        ctx.exit()

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        )

    app_config = Config(config_dir=config_dir)
    if data_root is not None:
        app_config.data_root = data_root.expanduser()

    ctx.obj = CliContext(config=app_config, default_format=format, debug=debug)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(serve.serve)
cli.add_command(ingest.ingest)
cli.add_command(repack.repack)
cli.add_command(status.status)
cli.add_command(trim.trim)
cli.add_command(config.config)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("TAPWATCH_DEBUG"):
            console.print_exception()
        else:
            console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
