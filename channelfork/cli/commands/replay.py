"""``channelfork replay`` — push a file of messages through a local fork.

Starts a ``ForkEngine`` on an in-process ``LocalTransport``, publishes
every non-blank line of the input on the inbound channel, stops the
engine and prints where each message ended up.
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path

import typer
from rich.console import Console

from channelfork.bridge.attributes import InMemoryAttributeStore
from channelfork.bridge.transport import LocalTransport
from channelfork.config import settings
from channelfork.core.engine import ForkEngine
from channelfork.core.extractor import encode_mqtt_message
from channelfork.models.attributes import INCOMING_CHANNEL, MESSAGE_FILTER, MODULE_STATE
from channelfork.models.engine import EngineState, StopReason
from channelfork.models.messages import PayloadFormat
from channelfork.monitor.renderer import RunRenderer, RunSummary

console = Console()


def _read_lines(input_path: str) -> list[str]:
    if input_path == "-":
        text = sys.stdin.read()
    else:
        path = Path(input_path)
        if not path.is_file():
            console.print(f"[red]Input file not found:[/red] {path}")
            raise typer.Exit(code=2)
        text = path.read_text(encoding="utf-8")
    return [line for line in text.splitlines() if line.strip()]


def replay_cmd(
    input_path: str = typer.Argument(
        ..., help="File with one JSON message per line, or '-' for stdin."
    ),
    inbound: str = typer.Option(
        ..., "--inbound", "-i", help="Inbound channel, relative to the node or absolute."
    ),
    message_filter: str = typer.Option(
        "",
        "--filter",
        "-f",
        help="JSONPath selecting the routing key. Empty routes to the default channel.",
    ),
    node: str = typer.Option(
        None, "--node", "-n", help="Node identity (defaults to CHANNELFORK_NODE_IDENTITY)."
    ),
    payload_format: PayloadFormat = typer.Option(
        None,
        "--format",
        help="Inbound framing; with 'mqtt' each line is wrapped in an MQTT message.",
    ),
    timeout: float = typer.Option(
        5.0, "--timeout", help="Seconds to wait for the engine to start and stop."
    ),
) -> None:
    """Replay messages through a local fork engine and summarize the result."""
    lines = _read_lines(input_path)

    run_settings = settings.model_copy(
        update={
            "node_identity": node or settings.node_identity,
            "payload_format": payload_format or settings.payload_format,
        }
    )

    try:
        transport = LocalTransport(
            run_settings.node_identity, max_history=run_settings.history_size
        )
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2) from exc

    attributes = InMemoryAttributeStore()
    attributes.add(INCOMING_CHANNEL, inbound, writable=False)
    attributes.add(MESSAGE_FILTER, message_filter, writable=False)
    attributes.add(MODULE_STATE, EngineState.STARTING.value)

    engine = ForkEngine(transport, attributes, settings=run_settings)
    worker = threading.Thread(target=engine.run, name="channelfork-engine", daemon=True)
    worker.start()

    inbound_identity = (
        engine.inbound_identity if engine.wait_until_running(timeout=timeout) else None
    )
    if inbound_identity is not None:
        publisher = transport.open(inbound_identity, run_settings.delivery_mode)
        for line in lines:
            payload = line.encode("utf-8")
            if run_settings.payload_format == PayloadFormat.MQTT:
                payload = encode_mqtt_message(payload)
            publisher.publish(payload)
        publisher.close()

    engine.stop(StopReason.USER_DIRECTED)
    worker.join(timeout=timeout)

    counts = transport.published_counts()
    counts.pop(engine.inbound_identity or "", None)

    summary = RunSummary(
        state=engine.state,
        inbound_identity=engine.inbound_identity,
        message_filter=message_filter or None,
        default_identity=engine.default_destination.identifier,
        stats=engine.stats(),
        destinations=counts,
    )
    RunRenderer(console=console).print_summary(summary)

    if engine.state == EngineState.ERROR:
        raise typer.Exit(code=1)
