"""Console output for renders, jobs and uploads, using Rich."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console(stderr=True)

BAR_WIDTH = 20


def _stamp() -> str:
    return f"[dim]\\[{datetime.now().strftime('%H:%M:%S')}][/dim]"


def log(message: str, *, style: str = "bold") -> None:
    """Log a timestamped message."""
    console.print(f"{_stamp()} {message}", style=style, highlight=False)


def log_step(step: str, message: str) -> None:
    """Log a stage of a render, job or upload."""
    console.print(f"{_stamp()} [bold cyan]{step}[/bold cyan] {message}", highlight=False)


def log_success(message: str) -> None:
    log(f"[green]✓[/green] {message}", style="")


def log_warning(message: str) -> None:
    log(f"[yellow]⚠[/yellow] {message}", style="")


def log_error(message: str) -> None:
    log(f"[red]✗[/red] {message}", style="")


def log_progress(progress: float, status: str) -> None:
    """Log a render progress callback as a text bar."""
    filled = round(max(0.0, min(1.0, progress)) * BAR_WIDTH)
    bar = "█" * filled + "·" * (BAR_WIDTH - filled)
    console.print(f"{_stamp()} [cyan]{bar}[/cyan] {progress:4.0%} {status}", highlight=False)


def show_render_summary(title: str, duration_seconds: float, details: dict) -> None:
    """Show a summary panel for a finished render."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()

    for key, value in details.items():
        table.add_row(key, str(value))

    table.add_row("Elapsed", f"{duration_seconds:.2f}s")

    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="green"))
