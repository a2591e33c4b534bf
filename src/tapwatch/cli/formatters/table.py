# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Table formatter using Rich for terminal output.
"""

from typing import Any, Dict, List, Optional

from rich.table import Table
from rich.tree import Tree
from rich.console import Console

from .base import BaseFormatter

console = Console()


class TableFormatter(BaseFormatter):
    """Format output as tables using Rich."""

    def format_status(self, summaries: List[Dict[str, Any]]):
        """Format tap summaries as a table."""
        if not summaries:
            console.print("[yellow]No taps with data in the retention window[/yellow]")
            return

        table = Table(title="Tap Status", show_header=True, header_style="bold magenta")
        table.add_column("Tap", style="cyan", no_wrap=True)
        table.add_column("Fill", justify="right")
        table.add_column("Average", justify="right")
        table.add_column("Last Sample", style="dim")
        table.add_column("Cached", justify="right")
        table.add_column("Samples", justify="right")
        table.add_column("Missing", justify="right")

        for summary in summaries:
            latest = summary.get("latest_fill")
            color = self._fill_color(latest)
            mean = summary.get("mean_fill")
            average = "-"
            if mean is not None:
                average = f"{self._format_percentage(mean)} ± {self._format_percentage(summary.get('stddev_fill'))}"

            table.add_row(
                summary["tap"],
                f"[{color}]{self._format_percentage(latest)}[/{color}]",
                average,
                summary.get("latest_timestamp") or "-",
                summary.get("cached_range") or "-",
                f"{summary.get('stable_samples', 0):,}",
                self._format_percentage(summary.get("missing_fraction")),
            )

        console.print(table)

    def format_repack(self, results: List[Dict[str, Any]]):
        """Format repack results as a table."""
        if not results:
            console.print("[yellow]No taps to repack[/yellow]")
            return

        table = Table(title="Archive Run", show_header=True, header_style="bold magenta")
        table.add_column("Tap", style="cyan", no_wrap=True)
        table.add_column("Bundles")
        table.add_column("Archived", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Status", justify="center")

        for result in results:
            status = "[yellow]aborted[/yellow]" if result.get("aborted") else "[green]done[/green]"
            table.add_row(
                result["tap"],
                ", ".join(result.get("bundles", [])) or "-",
                str(result.get("archived", 0)),
                str(len(result.get("skipped", []))),
                status,
            )

        console.print(table)

    def format_ingest(self, result: Dict[str, Any]):
        """Format an accepted update."""
        self.format_success(result["message"])
        console.print(
            f"  {result['fine_samples']} fine / {result['stable_samples']} stable samples",
            style="dim",
        )
        for key in ("chart_path", "raw_path"):
            if result.get(key):
                console.print(f"  {key.replace('_', ' ')}: {result[key]}", style="dim")

    def format_config(self, values: Dict[str, Any]):
        """Format configuration as a tree of sections."""
        tree = Tree("[bold]Configuration[/bold]")
        for section, entries in values.items():
            branch = tree.add(f"[cyan]{section}[/cyan]")
            if isinstance(entries, dict):
                for key, value in entries.items():
                    branch.add(f"{key}: [green]{value}[/green]")
            else:
                branch.add(f"[green]{entries}[/green]")
        console.print(tree)

    def format_error(self, error: str, status: Optional[int] = None):
        """Format error message."""
        prefix = f"Error ({status})" if status else "Error"
        console.print(f"[red]✗ {prefix}:[/red] {error}")
