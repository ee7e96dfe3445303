"""
Rich progress displays and interactive prompts for the CLI.

All output goes to stderr to preserve stdout for machine-readable output
(the saved path).
"""

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from zoombg import CancellationError, Decision, GenerationResult, SaveResult

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)


@contextmanager
def generation_progress(service: str | None = None) -> Iterator[None]:
    """
    Display a spinner during image generation.

    Args:
        service: Display name of the service being called

    Yields:
        None while generation is in progress
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,  # Disappears when done
    )

    desc_parts = ["Generating background"]
    if service:
        desc_parts.append(f"[dim]({service})[/dim]")

    with progress:
        task = progress.add_task(" ".join(desc_parts), total=None)
        yield
        progress.update(task, completed=True)


def print_success_result(
    save: SaveResult,
    generation_time: float,
    image_size: tuple[int, int] | None = None,
    regenerations: int = 0,
) -> None:
    """
    Print a rich formatted success message with generation details.

    Args:
        save: Where the image was (or would have been) saved
        generation_time: Time taken by the successful attempt (seconds)
        image_size: Width and height if known
        regenerations: How many times the user asked for another image
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    label = "Would save to" if save.dry_run else "Saved to"
    table.add_row(label, f"[bold green]{save.path}[/bold green]")
    table.add_row("Service", save.metadata.service_name)
    table.add_row("Time", f"{generation_time:.1f}s")
    if image_size and all(image_size):
        table.add_row("Size", f"{image_size[0]}x{image_size[1]}")
    if regenerations:
        table.add_row("Regenerated", str(regenerations))
    table.add_row("Prompt", f"[dim]{save.metadata.prompt_used}[/dim]")

    if save.dry_run:
        title = "[bold yellow]✓ Dry run: nothing was written[/bold yellow]"
        border = "yellow"
    else:
        title = "[bold green]✓ Zoom Background Saved[/bold green]"
        border = "green"

    console.print()
    console.print(Panel(table, title=title, border_style=border, padding=(1, 2)))
    if not save.dry_run:
        print_info("Select it in Zoom under Settings > Background & Effects.")


def print_info(message: str) -> None:
    """Print an info message in cyan."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")


def print_suggestion(message: str) -> None:
    """Print the remedy for an error."""
    console.print(f"[dim]Suggestion:[/dim] {message}")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {message}")


class ConsoleUI:
    """Terminal implementation of the workflow UI (click prompts + rich output)."""

    def __init__(
        self,
        quiet: bool = False,
        cancellable: Callable[[], AbstractContextManager] = nullcontext,
    ) -> None:
        self.quiet = quiet
        self._cancellable = cancellable

    def ask_prompt(self, message: str, default: str | None = None) -> str:
        try:
            return click.prompt(
                message,
                default=default or "",
                show_default=bool(default),
                err=True,
            )
        except click.Abort as e:
            raise CancellationError("Cancelled by user.") from e

    def ask_decision(self, result: GenerationResult) -> Decision:
        width, height = result.size
        size = f" {width}x{height}" if width and height else ""
        print_info(
            f"Generated {result.format.upper()}{size} with {result.service_name} "
            f"in {result.generation_time:.1f}s"
        )
        try:
            choice = click.prompt(
                "Use this background?",
                type=click.Choice([d.value for d in Decision]),
                default=Decision.APPROVE.value,
                err=True,
            )
        except click.Abort as e:
            raise CancellationError("Cancelled by user.") from e
        return Decision(choice)

    @contextmanager
    def generating(self, service_name: str) -> Iterator[None]:
        with self._cancellable():
            if self.quiet:
                yield
            else:
                with generation_progress(service_name):
                    yield

    def notify_retry(self, attempt: int, delay: float, error: BaseException) -> None:
        if not self.quiet:
            print_warning(f"Attempt {attempt} failed: {error}. Retrying in {delay:.1f}s...")

    def warn(self, message: str) -> None:
        print_warning(message)
