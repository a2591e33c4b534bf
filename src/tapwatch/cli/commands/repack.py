# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Repack command implementation.
"""

import sys
from typing import Optional, Tuple

import click
from rich.console import Console

from ..context import CliContext
from ..formatters import get_formatter
from ...processing.archive.repack import Repacker

console = Console()


@click.command()
@click.argument("taps", nargs=-1)
@click.option(
    "--all", "all_taps",
    is_flag=True,
    help="Repack every tap under the data root"
)
@click.option(
    "--time-budget",
    type=float,
    help="Seconds before the run stops early (default: from config)"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def repack(ctx: CliContext, taps: Tuple[str, ...], all_taps: bool, time_budget: Optional[float], format: str):
    """
    Bundle completed days of raw updates and move them to the archive.

    Examples:
        tapwatch repack Lunarville-beta
        tapwatch repack --all
    """
    formatter = get_formatter(format or ctx.default_format)

    if not taps and not all_taps:
        formatter.format_error("Name at least one tap or pass --all")
        sys.exit(2)

    repacker = Repacker(
        ctx.layout,
        time_budget=time_budget if time_budget is not None else ctx.config.archive_time_budget_seconds,
    )

    with console.status("Repacking..."):
        if all_taps:
            results = repacker.repack_all()
        else:
            results = [repacker.repack(tap) for tap in taps]

    formatter.format_repack([result.to_dict() for result in results])
