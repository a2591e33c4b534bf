# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Serve command implementation.
"""

import asyncio

import click

from ..context import CliContext
from ...processing import server


@click.command()
@click.option(
    "--no-stream",
    is_flag=True,
    help="Do not consume the Redis update stream"
)
@click.option(
    "--no-archive",
    is_flag=True,
    help="Do not run the periodic archive job"
)
@click.pass_obj
def serve(ctx: CliContext, no_stream: bool, no_archive: bool):
    """
    Run the telemetry server until interrupted.

    Examples:
        tapwatch serve
        tapwatch serve --no-stream     # Archive and stats only
    """
    if no_stream:
        ctx.config.stream_enabled = False
    if no_archive:
        ctx.config.archive_enabled = False
    if ctx.debug:
        ctx.config.log_level = "DEBUG"

    asyncio.run(server.main(ctx.config))
