"""Output formatting for the CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Writes user-facing messages, tables and JSON.

    Informational messages go to stdout and are suppressed in quiet or
    JSON mode; warnings and errors always go to stderr.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def _silent(self) -> bool:
        return self.quiet or self.json_output

    def print(self, message: str = "") -> None:
        if not self._silent():
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self._silent():
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if not self._silent():
            self.console.print(message, style="green", markup=False)

    def warning(self, message: str) -> None:
        self.err_console.print(message, style="yellow", markup=False)

    def error(self, message: str) -> None:
        self.err_console.print(f"Error: {message}", style="bold red", markup=False)

    def output_json(self, data: Any) -> None:
        """Print data as JSON regardless of quiet mode."""
        self.console.print_json(json.dumps(data, default=str))

    def print_table(
        self, columns: list[str], rows: list[list[str]], title: Optional[str] = None
    ) -> None:
        """Render rows as a table."""
        if self._silent():
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

