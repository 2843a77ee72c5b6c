"""``channelfork extract`` — evaluate a routing expression on one payload."""

from __future__ import annotations

import typer
from rich.console import Console

from channelfork.core.extractor import ExtractionError, FieldExtractor
from channelfork.core.identifiers import destination_identifier
from channelfork.models.messages import PayloadFormat

console = Console()


def extract_cmd(
    payload: str = typer.Argument(..., help="The message payload (JSON text)."),
    message_filter: str = typer.Option(
        ..., "--filter", "-f", help="JSONPath selecting the routing key."
    ),
    inbound: str = typer.Option(
        None, "--inbound", "-i", help="Also print the destination for this inbound channel."
    ),
    payload_format: PayloadFormat = typer.Option(
        PayloadFormat.JSON, "--format", help="Framing of PAYLOAD."
    ),
) -> None:
    """Show the routing key a payload would be forked on."""
    try:
        extractor = FieldExtractor(message_filter, payload_format)
        key = extractor.extract(payload.encode("utf-8"))
    except ExtractionError as exc:
        console.print(f"[red]Extraction failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if not key:
        console.print("[yellow]not found[/yellow] (message would be dropped)")
        return

    console.print(f"[bold]key:[/bold] {key}")
    if inbound:
        console.print(
            f"[bold]destination:[/bold] {destination_identifier(inbound, key)}"
        )
