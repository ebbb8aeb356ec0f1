"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Uses Rich for spinners, colored status lines and Markdown rendering of issue
and page summaries. Supports verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.markup import escape
from rich.spinner import Spinner

from src.text_mirror.coordinator import SaveResult


class OutputHandler:
    """Handles all terminal output using Rich library.

    Remote text (summaries, titles, error bodies) is escaped before printing,
    so square brackets in it are never read as Rich markup.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Saved PROJ-1")
        >>> with handler.spinner("Fetching issue..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.no_color = no_color
        self.console = Console(
            force_terminal=not no_color,
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message, markup=False)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(message, markup=False)

    def markdown(self, text: str) -> None:
        """Render Markdown (bold labels from the formatters).

        Falls back to plain text when color is disabled.
        """
        if self.no_color:
            self.print(text)
        else:
            self.console.print(Markdown(text))

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner while a single remote call runs.

        Args:
            message: Message to display with spinner

        Yields:
            None
        """
        if self.no_color:
            yield
            return
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def print_save_result(self, result: SaveResult) -> None:
        """Display the outcome of a save."""
        self.success(result.message)
        if result.auto_resolved:
            self.warning(
                f"The page changed remotely; the update was retried once "
                f"({result.update_attempts} attempts)"
            )
        if result.entity is None and not result.created:
            self.warning(f"Saved {result.identifier} but could not refresh the mirror")
