"""Console output for pyupyun commands."""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .utils import format_size as _format_size


class OutputFormatter:
    """Formats messages, summaries and JSON for the terminal.

    Info and success messages go to stdout and are suppressed in quiet mode.
    Warnings and errors go to stderr and are always shown.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine readable JSON instead of text
            quiet: Suppress non-essential output
            console: Console for regular output (defaults to stdout)
            err_console: Console for warnings and errors (defaults to stderr)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(f"[green]INFO [/green] {escape(message)}")

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(f"[green]INFO [/green] [bold]{escape(message)}[/bold]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]WARN [/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]ERROR[/red] {escape(message)}")

    def output_json(self, data: Any) -> None:
        """Write data as JSON to stdout, regardless of quiet mode."""
        sys.stdout.write(json.dumps(data, indent=2) + "\n")
        sys.stdout.flush()

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            rows: (label, value) pairs
        """
        if self.json_output:
            self.output_json({label: value for label, value in rows})
            return
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column(style="cyan")
        table.add_column()
        for label, value in rows:
            table.add_row(label, value)
        self.console.print(table)

    def format_size(self, size_bytes: int) -> str:
        return _format_size(size_bytes)
