# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Base formatter class for output formatting.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from rich.console import Console

console = Console()


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format_status(self, summaries: List[Dict[str, Any]]):
        """Format per-tap status summaries for output."""
        pass

    @abstractmethod
    def format_repack(self, results: List[Dict[str, Any]]):
        """Format archival run results for output."""
        pass

    @abstractmethod
    def format_ingest(self, result: Dict[str, Any]):
        """Format an accepted update for output."""
        pass

    @abstractmethod
    def format_config(self, values: Dict[str, Any]):
        """Format configuration values for output."""
        pass

    @abstractmethod
    def format_error(self, error: str, status: Optional[int] = None):
        """Format error message for output."""
        pass

    def format_success(self, message: str):
        """Format success message for output."""
        console.print(f"[green]✓[/green] {message}")

    def format_warning(self, message: str):
        """Format warning message for output."""
        console.print(f"[yellow]⚠[/yellow] {message}")

    def format_info(self, message: str):
        """Format info message for output."""
        console.print(f"[blue]ℹ[/blue] {message}")

    def _format_percentage(self, value: Optional[float]) -> str:
        """Format a ratio as a percentage."""
        if value is None:
            return "-"
        return f"{value * 100:.1f}%"

    def _fill_color(self, value: Optional[float]) -> str:
        """Color for a fill level: red when nearly empty."""
        if value is None:
            return "dim"
        if value < 0.15:
            return "red"
        if value < 0.4:
            return "yellow"
        return "green"
