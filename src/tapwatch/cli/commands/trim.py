# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Trim command implementation.
"""

import sys
from pathlib import Path

import click

from ..context import CliContext
from ..formatters import get_formatter
from ...processing.storage.tail_writer import trim_to_last_lines
from ...shared.errors import TailWriteError


@click.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("lines", type=click.IntRange(min=0))
@click.pass_obj
def trim(ctx: CliContext, path: Path, lines: int):
    """
    Crash-safely cut a file down to its last LINES lines.

    Examples:
        tapwatch trim ~/.tapwatch/data/Lunarville-beta.tsv 10000
    """
    formatter = get_formatter(ctx.default_format)

    try:
        rewritten = trim_to_last_lines(path, lines)
    except TailWriteError as e:
        formatter.format_error(str(e))
        sys.exit(1)

    if rewritten:
        formatter.format_success(f"Trimmed {path} to its last {lines} lines")
    else:
        formatter.format_info(f"{path} already has at most {lines} lines")
