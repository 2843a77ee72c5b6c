"""Rich terminal renderer for fork engine runs.

Turns a ``RunSummary`` into a Rich panel: one row per destination with
the number of messages it received, followed by the router counters.

Color scheme
------------
- green     : STOPPED
- bold red  : ERROR
- yellow    : RUNNING
- dim       : STARTING
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from channelfork.models.engine import EngineState, RouterStats

_STATE_STYLES: dict[EngineState, str] = {
    EngineState.STOPPED: "green",
    EngineState.ERROR: "bold red",
    EngineState.RUNNING: "yellow",
    EngineState.STARTING: "dim",
}

_STATE_LABELS: dict[EngineState, str] = {
    EngineState.STOPPED: "[green]STOPPED[/green]",
    EngineState.ERROR: "[bold red]ERROR[/bold red]",
    EngineState.RUNNING: "[yellow]RUNNING[/yellow]",
    EngineState.STARTING: "[dim]STARTING[/dim]",
}


class RunSummary(BaseModel):
    """Everything the renderer needs to describe one engine run."""

    model_config = ConfigDict(frozen=True)

    state: EngineState
    inbound_identity: str | None = None
    message_filter: str | None = None
    default_identity: str | None = None
    stats: RouterStats = RouterStats()
    destinations: dict[str, int] = {}  # identifier -> messages published


class RunRenderer:
    """Renders ``RunSummary`` as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_summary(self, summary: RunSummary) -> Panel:
        """Render a RunSummary as a Panel containing a destination table."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Destination", style="cyan")
        table.add_column("Messages", justify="right")
        table.add_column("Kind", justify="center")

        for identifier in sorted(summary.destinations):
            kind = (
                "[magenta]default[/magenta]"
                if identifier == summary.default_identity
                else "forked"
            )
            table.add_row(identifier, str(summary.destinations[identifier]), kind)

        if not summary.destinations:
            table.add_row("[dim]no destinations[/dim]", "-", "-")

        stats = summary.stats
        footer = "  |  ".join(
            [
                f"[bold]State:[/bold] {_STATE_LABELS[summary.state]}",
                f"[bold]Received:[/bold] {stats.received}",
                f"[bold]Routed:[/bold] {stats.routed}",
                f"[bold]Default:[/bold] {stats.defaulted}",
                f"[bold]Dropped:[/bold] {stats.dropped}",
            ]
        )

        filter_label = summary.message_filter or "[dim](none, default channel)[/dim]"
        title = (
            f"[bold]Fork[/bold] {summary.inbound_identity or '?'}  "
            f"[dim]filter:[/dim] {filter_label}"
        )

        return Panel(
            Group(table, Text(""), Text.from_markup(footer)),
            title=title,
            border_style=_STATE_STYLES[summary.state],
            padding=(1, 2),
        )

    def print_summary(self, summary: RunSummary) -> None:
        """Render and print a summary to the console."""
        self.console.print(self.render_summary(summary))
