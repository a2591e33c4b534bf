# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingest command implementation.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from ..context import CliContext
from ..formatters import get_formatter
from ...processing.ingest.auth import UserDirectory
from ...processing.ingest.pipeline import IngestionPipeline
from ...shared.errors import ConfigError, TapwatchError


@click.command()
@click.argument(
    "payload",
    type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--api-key", "-k",
    envvar="TAPWATCH_API_KEY",
    help="API key to authenticate the update with"
)
@click.option(
    "--no-auth",
    is_flag=True,
    help="Skip the users file check"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    help="Output format"
)
@click.pass_obj
def ingest(ctx: CliContext, payload: Path, api_key: Optional[str], no_auth: bool, format: str):
    """
    Push one JSON update through the ingestion pipeline.

    The update is merged, charted and persisted exactly as if a tap had
    sent it.

    Examples:
        tapwatch ingest update.json --api-key abc123
        tapwatch ingest update.json --no-auth
    """
    formatter = get_formatter(format or ctx.default_format)

    authenticator = None
    if not no_auth:
        if not ctx.config.users_file:
            formatter.format_error("No users file configured; pass --no-auth to skip authentication")
            sys.exit(1)
        try:
            authenticator = UserDirectory.load(ctx.config.users_file)
        except ConfigError as e:
            formatter.format_error(str(e))
            sys.exit(1)

    registry, _ = ctx.load_registry()
    pipeline = IngestionPipeline(
        registry=registry,
        layout=ctx.layout,
        retention=ctx.config.retention,
        chart_max_lines=ctx.config.chart_max_lines,
        authenticator=authenticator,
    )

    try:
        result = pipeline.handle(payload.read_bytes(), api_key)
    except TapwatchError as e:
        status = getattr(e, "status", None)
        formatter.format_error(str(e), status=int(status) if status else None)
        sys.exit(1)

    formatter.format_ingest({
        "tap": result.tap_name,
        "user": result.username,
        "message": result.message,
        "fine_samples": result.fine_samples,
        "stable_samples": result.stable_samples,
        "chart_path": str(result.chart_path) if result.chart_path else None,
        "raw_path": str(result.raw_path) if result.raw_path else None,
    })
