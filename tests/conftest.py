"""Shared test fixtures for channelfork."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from channelfork.bridge.attributes import InMemoryAttributeStore
from channelfork.bridge.transport import LocalTransport
from channelfork.config import ForkSettings
from channelfork.core.engine import ForkEngine
from channelfork.models.attributes import INCOMING_CHANNEL, MESSAGE_FILTER, MODULE_STATE
from channelfork.models.engine import EngineState

NODE_IDENTITY = "ndn:/node"
INBOUND = "/test-fork"
INBOUND_IDENTITY = "ndn:/node/test-fork"


@pytest.fixture
def transport() -> LocalTransport:
    """Provide a fresh in-process transport for the test node."""
    return LocalTransport(NODE_IDENTITY)


@pytest.fixture
def attributes() -> InMemoryAttributeStore:
    """Provide an attribute store configured with the test inbound channel."""
    store = InMemoryAttributeStore()
    store.add(INCOMING_CHANNEL, INBOUND, writable=False)
    store.add(MODULE_STATE, EngineState.STARTING.value)
    return store


@pytest.fixture
def fork_settings() -> ForkSettings:
    """Provide settings that ignore the developer's environment."""
    return ForkSettings(_env_file=None, node_identity=NODE_IDENTITY)


# ---------------------------------------------------------------------------
# Payload factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_sensor_payload() -> Callable[..., bytes]:
    """Factory fixture: build a sensor reading with sensible defaults.

    Pass ``sensoridentifier=None`` to omit the field entirely.
    """

    def _factory(sensoridentifier: str | None = "SUNSETPASSDEX_1", **overrides: Any) -> bytes:
        document: dict[str, Any] = {
            "datetime": "2015-11-01T17:57:53-0700",
            "deviceidentifier": "00137a0018cdd",
            "protocol": {"id": 1, "name": "SunsetPassDEX", "type": 31},
            "type": "sensor",
            "value": "",
        }
        if sensoridentifier is not None:
            document["sensoridentifier"] = sensoridentifier
        document.update(overrides)
        return json.dumps(document).encode("utf-8")

    return _factory


# ---------------------------------------------------------------------------
# Engine runner
# ---------------------------------------------------------------------------


class EngineHarness:
    """Runs a ForkEngine on a background thread for the duration of a test."""

    def __init__(self, engine: ForkEngine, transport: LocalTransport) -> None:
        self.engine = engine
        self.transport = transport
        self.result: EngineState | None = None
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self) -> None:
        self.result = self.engine.run()

    def start(self) -> EngineHarness:
        self._thread.start()
        self.engine.wait_until_running(timeout=2.0)
        return self

    def publish(self, payload: bytes) -> None:
        """Publish on the engine's inbound channel through a separate handle."""
        assert self.engine.inbound_identity is not None
        channel = self.transport.open(self.engine.inbound_identity)
        try:
            channel.publish(payload)
        finally:
            channel.close()

    def stop(self) -> EngineState | None:
        self.engine.stop()
        self._thread.join(timeout=2.0)
        return self.result

    def join(self) -> EngineState | None:
        self._thread.join(timeout=2.0)
        return self.result


@pytest.fixture
def run_engine(
    transport: LocalTransport,
    attributes: InMemoryAttributeStore,
    fork_settings: ForkSettings,
) -> Iterator[Callable[..., EngineHarness]]:
    """Factory fixture: start a ForkEngine with an optional message filter."""
    harnesses: list[EngineHarness] = []

    def _factory(message_filter: str | None = None) -> EngineHarness:
        if message_filter is not None:
            attributes.add(MESSAGE_FILTER, message_filter, writable=False)
        engine = ForkEngine(transport, attributes, settings=fork_settings)
        harness = EngineHarness(engine, transport).start()
        harnesses.append(harness)
        return harness

    yield _factory

    for harness in harnesses:
        harness.stop()


@pytest.fixture
def harness_for(transport: LocalTransport) -> Iterator[Callable[[ForkEngine], EngineHarness]]:
    """Factory fixture: run an already-built engine, stopping it afterwards."""
    harnesses: list[EngineHarness] = []

    def _factory(engine: ForkEngine) -> EngineHarness:
        harness = EngineHarness(engine, transport).start()
        harnesses.append(harness)
        return harness

    yield _factory

    for harness in harnesses:
        harness.stop()
