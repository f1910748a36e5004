"""Console output formatting for the CLI and sync engine."""

import json
from typing import Any

import click
from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Writes user-facing progress to stdout, warnings and errors to stderr.

    In quiet mode only warnings and errors are shown. In JSON mode
    informational lines are suppressed so that ``output_json`` produces
    clean machine-readable output.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit JSON summaries instead of text
            quiet: Suppress non-essential output
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False, soft_wrap=True)
        self.err_console = Console(stderr=True, highlight=False, soft_wrap=True)

    @property
    def _informational(self) -> bool:
        return not self.quiet and not self.json_output

    def print(self, message: str = "") -> None:
        """Print a plain line."""
        if self._informational:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        """Print an informational line."""
        if self._informational:
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        """Print a success line."""
        if self._informational:
            self.console.print(message, style="green", markup=False)

    def warning(self, message: str) -> None:
        """Print a warning line (shown even in quiet mode)."""
        if not self.json_output:
            self.err_console.print(
                f"Warning: {message}", style="yellow", markup=False
            )

    def error(self, message: str) -> None:
        """Print an error line (always shown)."""
        self.err_console.print(f"Error: {message}", style="bold red", markup=False)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            items: (label, value) rows
        """
        if not self._informational:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for label, value in items:
            table.add_row(label, value)
        self.console.print(table)

    def output_json(self, data: Any) -> None:
        """Print data as JSON (only in JSON mode)."""
        if self.json_output:
            click.echo(json.dumps(data, indent=2))
