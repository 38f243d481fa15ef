# SiteSync Console Output
# Rich-based console output for user-friendly display

from typing import Optional

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from sitesync.config.schema import ConnectionProfile
from sitesync.sync.engine import SyncOutcome, SyncResult


class Console:
    """
    Console output manager using Rich.

    Provides formatted output for sync operations.
    """

    def __init__(self, *, verbose: bool = False, colored: bool = True, console: Optional[RichConsole] = None):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
            console: Existing rich console to wrap.
        """
        self.verbose = verbose
        self._console = console or RichConsole(no_color=not colored, highlight=False)

    @property
    def rich(self) -> RichConsole:
        """Underlying rich console (shared with the log handler)."""
        return self._console

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message."""
        self._console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self._console.print(f"[green]{message}[/green]")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self._console.print(f"[blue]{message}[/blue]")

    def print_profile(self, profile: ConnectionProfile, *, configured: Optional[bool] = None) -> None:
        """Print the connection profile with the password masked."""
        shown = profile.masked()
        lines = [
            f"Bridge:   {shown.api_url or '[dim]not set[/dim]'}",
            f"Host:     {shown.host or '[dim]not set[/dim]'}:{shown.port}",
            f"User:     {shown.user or '[dim]not set[/dim]'}",
            f"Password: {shown.password or '[dim]not set[/dim]'}",
            f"Database: {shown.database or '[dim]not set[/dim]'}",
        ]
        if configured is None:
            configured = profile.is_complete
        border = "green" if configured else "yellow"
        title = "Remote Connection" if configured else "Remote Connection (not configured)"
        self._console.print(Panel("\n".join(lines), title=title, border_style=border))

    def print_table_counts(self, counts: dict[str, int], *, title: str = "Local Tables") -> None:
        """Print row counts per table."""
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Table", style="cyan")
        table.add_column("Rows", justify="right")
        for name, count in counts.items():
            table.add_row(name, str(count))
        self._console.print(table)

    def print_sync_result(self, result: SyncResult) -> None:
        """
        Print a pull or push result.

        Args:
            result: Result to display.
        """
        operation = result.operation.value.capitalize()

        if result.outcome == SyncOutcome.BUSY:
            self.print_warning(f"{operation} skipped: {result.reason}")
            return
        if result.outcome == SyncOutcome.NOT_CONFIGURED:
            self.print_warning(f"{operation} skipped: {result.reason}")
            self._console.print("[dim]→ Configure the connection: sitesync setup --help[/dim]")
            return

        if self.verbose or result.table_errors:
            for name, count in result.tables.items():
                self._console.print(f"    [green]✓[/green] {name} ({count} rows)")
            for name, reason in result.table_errors.items():
                self._console.print(f"    [red]✗[/red] {name}: {reason}")

        summary = f"Tables: {len(result.tables)}, rows: {result.total_rows}, time: {result.duration:.2f}s"
        if result.success:
            body = f"[green]{operation} completed[/green]\n{summary}"
            border = "green"
        elif result.outcome == SyncOutcome.PARTIAL:
            body = f"[yellow]{operation} completed with errors[/yellow]\n{summary}\n{result.reason}"
            border = "yellow"
        else:
            body = f"[red]{operation} failed[/red]\n{result.reason}"
            border = "red"
        self._console.print(Panel(body, title="Summary", border_style=border))

    def print_config_summary(self, config_path: str, store_path: str, tables_count: int) -> None:
        """Print configuration summary."""
        self._console.print(
            Panel(
                f"Config: {config_path}\nStore:  {store_path}\nTables: {tables_count}",
                title="SiteSync Configuration",
                border_style="blue",
            )
        )


def create_console(*, verbose: bool = False, colored: bool = True) -> Console:
    """
    Create a console instance.

    Args:
        verbose: Enable verbose output.
        colored: Enable colored output.

    Returns:
        Console instance.
    """
    return Console(verbose=verbose, colored=colored)
