"""Console reporting for oav commands.

All terminal output goes through an :class:`Output` instance created once by
the CLI and passed to the runner, the stages and the pipeline.  It carries
the verbosity flags so nothing consults process-wide state.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.status import Status


class Output:
    """Rich-backed console reporter.

    Parameters
    ----------
    verbose:
        Mirror subprocess output live and print ``==> Stage`` lines instead of
        spinners.
    quiet:
        Suppress everything except errors and :meth:`println_always`.
    console / err_console:
        Destinations for normal and error output.  Tests pass consoles
        writing to ``io.StringIO``.
    """

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        *,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ) -> None:
        if verbose and quiet:
            raise ValueError("verbose and quiet are mutually exclusive")
        self.verbose = verbose
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def color(self) -> bool:
        return self.console.is_terminal and not self.console.no_color

    @property
    def progress(self) -> bool:
        """Spinners are only drawn on an interactive terminal in normal mode."""
        return self.console.is_terminal and not self.verbose and not self.quiet

    # ------------------------------------------------------------------
    # Stage-level progress
    # ------------------------------------------------------------------

    def start_spinner(self, label: str) -> Optional[Status]:
        if self.progress:
            status = self.console.status(escape(label), spinner="line")
            status.start()
            return status
        if self.verbose:
            self.console.print(f"==> {escape(label)}")
        return None

    def finish_spinner(self, spinner: Optional[Status], label: str, success: bool) -> None:
        if spinner is not None:
            spinner.stop()
        if self.quiet:
            return
        self.console.print(f"{self._status_icon(success)} {escape(label)}")

    def phase_header(self, label: str) -> None:
        if self.quiet:
            return
        self.console.print()
        if self.color:
            self.console.print(f"[bold]{escape(label)}[/bold]")
        else:
            self.console.print(escape(label))

    # ------------------------------------------------------------------
    # Task-level progress
    # ------------------------------------------------------------------

    def substep_start(self, label: str) -> Optional[Status]:
        if self.quiet:
            return None
        if self.progress:
            status = self.console.status(f"  {escape(label)}...", spinner="line")
            status.start()
            return status
        if self.verbose:
            self.console.print(f"{escape(label)}...")
        return None

    def substep_finish(
        self, label: str, success: bool, status: Optional[Status] = None
    ) -> None:
        if status is not None:
            status.stop()
        if self.quiet:
            return
        self.console.print(f"{self._status_icon(success)}   {escape(label)}")

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def println(self, message: str) -> None:
        if not self.quiet:
            self.console.print(escape(message))

    def println_always(self, message: str) -> None:
        self.console.print(escape(message))

    def print_plain(self, text: str) -> None:
        """Print machine-readable text (YAML, config values) without wrapping or markup."""
        self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def print_error(self, message: str) -> None:
        if self.err_console.is_terminal and not self.err_console.no_color:
            self.err_console.print(f"[bold red]error:[/bold red] {escape(message)}")
        else:
            self.err_console.print(f"error: {escape(message)}")

    def print_summary(self, passed: int, failed: int) -> None:
        """Print the final ``N passed, M failed`` line."""
        if self.quiet:
            return
        self.console.print()
        if self.color:
            failed_style = "red" if failed > 0 else "dim"
            self.console.print(
                f"[green]{passed} passed[/green], [{failed_style}]{failed} failed[/{failed_style}]"
            )
        else:
            self.console.print(f"{passed} passed, {failed} failed")

    def _status_icon(self, success: bool) -> str:
        if self.color:
            return "[green]✓[/green]" if success else "[red]✗[/red]"
        return "OK" if success else "FAIL"
