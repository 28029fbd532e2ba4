"""Output formatting for the vaultsync CLI."""

import json
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Prints human-readable or JSON output.

    Informational output goes to stdout and is suppressed in quiet or JSON
    mode; warnings and errors always go to stderr.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress non-essential output
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def _show(self) -> bool:
        return not self.quiet and not self.json_output

    def print(self, message: str = "") -> None:
        """Print a plain line."""
        if self._show():
            self.console.print(message)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self._show():
            self.console.print(message)

    def success(self, message: str) -> None:
        """Print a success message."""
        if self._show():
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Print a warning to stderr."""
        if not self.json_output:
            self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print an error to stderr."""
        if self.json_output:
            sys.stderr.write(json.dumps({"error": message}) + "\n")
        else:
            self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        """Write data as JSON to stdout."""
        sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")

    def format_size(self, size_bytes: int) -> str:
        """Format a byte count for display."""
        return format_size(size_bytes)

    def output_table(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column table."""
        if not self._show():
            return
        table = Table(title=title, show_header=True)
        table.add_column("Action")
        table.add_column("Path")
        for action, path in rows:
            table.add_row(action, path)
        self.console.print(table)
