#!/usr/bin/env python3
"""
Console UI Module using Rich

Provides the terminal output of kenosis: styled status lines, the
configuration table and the end-of-run summary. Quiet mode silences
everything except errors, which always go to stderr.
"""

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(self, quiet: bool = False, force_terminal: Optional[bool] = None):
        """Initialize console with optional quiet mode and terminal forcing"""
        self.console = Console(force_terminal=force_terminal, highlight=False, quiet=quiet)
        self.error_console = Console(stderr=True, force_terminal=force_terminal, highlight=False)
        self.quiet = quiet

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red on stderr"""
        self.error_console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        panel = Panel(header_text, box=box.ROUNDED, padding=(0, 1))
        self.console.print(panel)

    # Configuration display
    def show_configuration(self, config: dict[str, Any]):
        """Display configuration in a formatted table"""
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Setting", style="cyan dim", min_width=20, justify="right")
        table.add_column("Value", style="cyan", min_width=30)

        for key, value in config.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(key, str(value))

        self.console.print(table)

    def show_summary_table(self, title: str, headers: list[str], rows: list[list[str]]):
        """Display a summary table; the first column is the row label"""
        table = Table(title=title, box=box.ROUNDED, show_lines=False)
        for i, header in enumerate(headers):
            if i == 0:
                table.add_column(header, style="cyan", min_width=16)
            else:
                table.add_column(header, justify="right", min_width=8)

        for row in rows:
            table.add_row(*row)

        self.console.print(table)

    def show_failures(self, failures: list[tuple[str, str]], limit: int = 10):
        """List failed paths with their error, then "and X more" if too many"""
        if not failures:
            return
        self.print_warning(f"Failed to remove {len(failures)} entries:")
        for path, error in failures[:limit]:
            self.console.print(f"[yellow dim]  • {path}: {error}[/yellow dim]")
        if len(failures) > limit:
            self.console.print(f"[yellow dim]  • ... and {len(failures) - limit} more[/yellow dim]")
