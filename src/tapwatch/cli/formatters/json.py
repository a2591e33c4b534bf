# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
JSON formatter for structured output.
"""

import json
from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.syntax import Syntax

from .base import BaseFormatter

console = Console()


class JSONFormatter(BaseFormatter):
    """Format output as JSON for scripting and automation."""

    def __init__(self, pretty: bool = True, colored: bool = True):
        """Initialize JSON formatter.

        Args:
            pretty: Whether to pretty-print JSON
            colored: Whether to use syntax highlighting on a terminal
        """
        self.pretty = pretty
        self.colored = colored

    def format_status(self, summaries: List[Dict[str, Any]]):
        """Format tap summaries as JSON."""
        self._print_json({"taps": summaries, "count": len(summaries)})

    def format_repack(self, results: List[Dict[str, Any]]):
        """Format repack results as JSON."""
        self._print_json({"results": results, "count": len(results)})

    def format_ingest(self, result: Dict[str, Any]):
        """Format an accepted update as JSON."""
        self._print_json(dict(result, success=True))

    def format_config(self, values: Dict[str, Any]):
        """Format configuration as JSON."""
        self._print_json(values)

    def format_error(self, error: str, status: Optional[int] = None):
        """Format error message as JSON."""
        output = {
            "error": error,
            "success": False
        }
        if status:
            output["status"] = status
        self._print_json(output)

    def _print_json(self, data: Any):
        """Print JSON with optional formatting and coloring."""
        if self.pretty:
            json_str = json.dumps(data, indent=2, sort_keys=False, default=str)
        else:
            json_str = json.dumps(data, default=str)

        if self.colored and console.is_terminal:
            syntax = Syntax(json_str, "json", theme="monokai")
            console.print(syntax)
        else:
            print(json_str)
