# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Status command implementation.
"""

import sys
from typing import Optional

import click
from rich.console import Console

from ..context import CliContext
from ..formatters import get_formatter
from ...processing.summary import summarize

console = Console()


@click.command()
@click.argument("tap", required=False)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def status(ctx: CliContext, tap: Optional[str], format: str):
    """
    Show fill level and history coverage per tap.

    Stored data is loaded from the data root, limited to the retention
    window.

    Examples:
        tapwatch status
        tapwatch status Lunarville-beta --format json
    """
    formatter = get_formatter(format or ctx.default_format)

    with console.status("Loading stored reports..."):
        registry, result = ctx.load_registry()

    if result.files_skipped:
        formatter.format_warning(f"Skipped {len(result.files_skipped)} unreadable files")

    names = [tap] if tap else registry.taps()
    summaries = []
    for name in names:
        snapshot = registry.snapshot(name)
        if snapshot is None:
            formatter.format_error(f"No data for tap {name}")
            sys.exit(1)
        summaries.append(summarize(snapshot, ctx.config.retention).to_dict())

    formatter.format_status(summaries)
