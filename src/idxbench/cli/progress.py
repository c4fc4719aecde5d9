"""
Rich console output utilities for the idxbench CLI.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Global console instance
console = Console()


@contextmanager
def status(message: str) -> Iterator[None]:
    """
    Show a status spinner while performing an operation.

    Example:
        >>> with status("Loading dataset..."):
        ...     dataset = load_mnist(root)
    """
    with console.status(f"[bold blue]{message}"):
        yield


class StageStatus:
    """
    Stage callback that keeps a spinner on the running stage.

    Example:
        >>> with StageStatus() as on_stage:
        ...     service.set_progress_callback(on_stage)
        ...     service.run(config)
    """

    def __init__(self, disable: bool = False) -> None:
        self.disable = disable
        self._status = None

    def __enter__(self) -> "StageStatus":
        if not self.disable:
            self._status = console.status("[bold blue]Starting run")
            self._status.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._status is not None:
            self._status.stop()

    def __call__(self, stage: str, event: str) -> None:
        if self.disable:
            return
        if event == "start":
            if self._status is not None:
                self._status.update(f"[bold blue]{stage.replace('_', ' ')}")
        else:
            console.print(f"[green]✓[/green] {stage}")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]![/yellow] {message}")


def print_table(
    title: str,
    columns: list,
    rows: list,
    show_header: bool = True,
) -> None:
    """
    Print a formatted table.

    Args:
        title: Table title
        columns: List of column names
        rows: List of row data (each row is a list of values)
        show_header: Whether to show column headers
    """
    table = Table(title=title, show_header=show_header)

    for col in columns:
        table.add_column(col)

    for row in rows:
        table.add_row(*[str(v) for v in row])

    console.print(table)


def print_panel(
    content: str,
    title: Optional[str] = None,
    style: str = "blue",
) -> None:
    """Print content in a panel/box."""
    console.print(Panel(content, title=title, border_style=style))


def print_summary(
    title: str,
    stats: dict,
    style: str = "blue",
) -> None:
    """
    Print a summary panel with statistics.

    Args:
        title: Summary title
        stats: Dictionary of stat names to values
        style: Border style color
    """
    lines = []
    for key, value in stats.items():
        if isinstance(value, float):
            lines.append(f"[bold]{key}:[/bold] {value:.2f}")
        else:
            lines.append(f"[bold]{key}:[/bold] {value}")

    print_panel("\n".join(lines), title=title, style=style)
