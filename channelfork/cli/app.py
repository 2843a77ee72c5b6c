"""Main Typer application — imports and registers all CLI commands.

Entry point: ``channelfork`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from channelfork import __version__
from channelfork.cli.commands.extract import extract_cmd
from channelfork.cli.commands.replay import replay_cmd
from channelfork.config import settings

app = typer.Typer(
    name="channelfork",
    help="channelfork: content-based fan-out router for pub-sub channels.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="replay", help="Replay messages through a local fork engine.")(replay_cmd)
app.command(name="extract", help="Evaluate a routing expression on one payload.")(extract_cmd)


def configure_logging(level: str) -> None:
    """Route log records through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", "-l", help="Log level (defaults to CHANNELFORK_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging before any subcommand runs."""
    configure_logging(log_level or settings.log_level)


@app.command(name="version", help="Show the channelfork version.")
def version_cmd() -> None:
    typer.echo(f"channelfork {__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
