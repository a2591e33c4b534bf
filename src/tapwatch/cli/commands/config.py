# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Config command implementation for inspecting server configuration.
"""

import json
import sys

import click
from rich.console import Console

from ..context import CliContext
from ..formatters import get_formatter
from ...shared.errors import ConfigError

console = Console()


@click.command()
@click.option(
    "--list", "list_config",
    is_flag=True,
    help="Show all configuration values"
)
@click.option(
    "--get",
    help="Get specific configuration key"
)
@click.option(
    "--validate",
    is_flag=True,
    help="Validate configuration"
)
@click.option(
    "--init",
    is_flag=True,
    help="Write the current configuration to config.yaml"
)
@click.pass_obj
def config(ctx: CliContext, list_config: bool, get: str, validate: bool, init: bool):
    """
    Inspect telemetry configuration.

    Examples:
        tapwatch config --list                      # Show all settings
        tapwatch config --get retention.max_age_days
        tapwatch config --validate
    """
    formatter = get_formatter(ctx.default_format)
    app_config = ctx.config

    if get:
        value = app_config.get(get)
        if value is None:
            formatter.format_error(f"Configuration key not found: {get}")
            sys.exit(1)

        if ctx.default_format == "json":
            print(json.dumps({get: value}, indent=2, default=str))
        else:
            console.print(f"{get}: {value}")
        return

    if validate:
        try:
            app_config.validate()
        except ConfigError as e:
            formatter.format_error(f"Configuration is invalid: {e}")
            sys.exit(1)
        formatter.format_success("Configuration is valid")
        return

    if init:
        app_config.save_to_file()
        formatter.format_success(f"Configuration written to {app_config.config_path}")
        return

    if list_config or not (get or validate or init):
        formatter.format_config(app_config.to_dict())
