"""Fork engine — lifecycle controller for one content-based fan-out run.

``run`` drives the state machine::

    STARTING --> RUNNING --> STOPPED
        |           |
        +--> ERROR <+

STARTING registers the ``forked-channels`` attribute, reads the routing
configuration, opens the inbound channel and subscribes the router.
RUNNING parks the calling thread on a stop event.  Teardown always runs
on the way out and closes every forked channel (in parallel), the default
channel and the inbound channel, each on a best-effort basis.

``stop`` may be called from any thread, before, during or after ``run``.
It does not cancel in-flight dispatches; a publish racing teardown fails
and is logged by the router.
"""

from __future__ import annotations

import logging
import threading

from channelfork.bridge.attributes import AttributeStore, AttributeStoreError
from channelfork.bridge.transport import Channel, ChannelTransport, TransportError
from channelfork.config import ForkSettings
from channelfork.core.default_destination import DefaultDestination
from channelfork.core.extractor import FieldExtractor, InvalidExpressionError
from channelfork.core.identifiers import default_identifier, join_identity
from channelfork.core.registry import DestinationRegistry, close_channel
from channelfork.core.router import Router
from channelfork.core.state_machine import EngineStateMachine
from channelfork.models.attributes import (
    FORKED_CHANNELS,
    INCOMING_CHANNEL,
    MESSAGE_FILTER,
    MODULE_STATE,
)
from channelfork.models.engine import EngineState, RouterStats, StopReason

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when the engine's routing configuration is missing or invalid."""


class ForkEngine:
    """Forks one inbound channel into per-key destination channels.

    Parameters
    ----------
    transport:
        Transport used for the inbound, forked and default channels.
    attributes:
        Attribute store holding ``incoming-channel`` (required) and
        ``message-filter`` (optional), and receiving ``module-state`` and
        ``forked-channels``.
    settings:
        Process settings; defaults to a fresh ``ForkSettings()``.

    Usage
    -----
    >>> engine = ForkEngine(transport, attributes)
    >>> worker = threading.Thread(target=engine.run)
    >>> worker.start()
    >>> engine.wait_until_running(timeout=1.0)
    >>> ...
    >>> engine.stop()
    >>> worker.join()
    """

    def __init__(
        self,
        transport: ChannelTransport,
        attributes: AttributeStore,
        settings: ForkSettings | None = None,
    ) -> None:
        self._transport = transport
        self._attributes = attributes
        self._settings = settings or ForkSettings()

        self._machine = EngineStateMachine()
        self._state_lock = threading.Lock()  # transition + module-state write
        self._stop_event = threading.Event()
        self._running_event = threading.Event()
        self._startup_event = threading.Event()  # set once startup succeeded or failed
        self._finished_event = threading.Event()

        self._registry = DestinationRegistry(transport, self._settings.delivery_mode)
        self._default = DefaultDestination(
            transport,
            default_identifier(transport.default_identity),
            self._settings.delivery_mode,
        )
        self._inbound: Channel | None = None
        self._inbound_identity: str | None = None
        self._router: Router | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._machine.state

    @property
    def router(self) -> Router | None:
        """The installed router, available once startup has subscribed it."""
        return self._router

    @property
    def registry(self) -> DestinationRegistry:
        return self._registry

    @property
    def default_destination(self) -> DefaultDestination:
        return self._default

    @property
    def inbound_channel(self) -> Channel | None:
        return self._inbound

    @property
    def inbound_identity(self) -> str | None:
        return self._inbound_identity

    def known_destinations(self) -> list[str]:
        return self._router.known_destinations() if self._router else []

    def stats(self) -> RouterStats:
        return self._router.stats() if self._router else RouterStats()

    def wait_until_running(self, timeout: float | None = None) -> bool:
        """Block until the engine is RUNNING or has finished.

        Returns ``True`` only if the engine reached RUNNING.
        """
        self._startup_event.wait(timeout)
        return self._running_event.is_set()

    def wait_until_finished(self, timeout: float | None = None) -> bool:
        """Block until teardown has completed."""
        return self._finished_event.wait(timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> EngineState:
        """Start forking and block until ``stop`` is called.

        Returns the final engine state (STOPPED or ERROR).
        """
        try:
            self._start()
            if self._advance(EngineState.RUNNING):
                logger.info("Set state of module to %s", EngineState.RUNNING.name)
                self._running_event.set()
            self._startup_event.set()
            self._stop_event.wait()
        except (
            ConfigurationError,
            AttributeStoreError,
            InvalidExpressionError,
            TransportError,
            ValueError,
        ) as exc:
            logger.error("Fork engine failed to start: %s", exc, exc_info=True)
            self._fail()
        except Exception:  # noqa: BLE001
            logger.exception("Fork engine stopped on an unexpected error")
            self._fail()
        finally:
            self._startup_event.set()
            self._teardown()
            self._finished_event.set()

        logger.info("Fork engine finished in state %s", self.state.name)
        return self.state

    def stop(self, reason: StopReason = StopReason.USER_DIRECTED) -> None:
        """Request shutdown; releases ``run`` and triggers teardown."""
        logger.info("Module stopped: %s", reason.value)
        self._advance(EngineState.STOPPED)
        self._stop_event.set()

    def _start(self) -> None:
        self._attributes.add(FORKED_CHANNELS, None, writable=True)

        relative = self._read_optional(INCOMING_CHANNEL)
        if not relative:
            raise ConfigurationError(f"Missing required attribute: {INCOMING_CHANNEL}")
        self._inbound_identity = join_identity(self._transport.default_identity, relative)
        logger.info("Incoming channel name is: %s", self._inbound_identity)

        expression = self._read_optional(MESSAGE_FILTER)
        extractor = (
            FieldExtractor(expression, self._settings.payload_format)
            if expression
            else None
        )
        if extractor is None:
            logger.info(
                "No message-filter configured, all messages go to %s",
                self._default.identifier,
            )

        self._router = Router(
            self._inbound_identity,
            self._registry,
            self._default,
            self._attributes,
            extractor,
        )

        self._inbound = self._transport.open(
            self._inbound_identity, self._settings.delivery_mode
        )
        logger.info("Set up callback for: %s", self._inbound_identity)
        self._inbound.subscribe(self._router)
        logger.info(
            "Callback setup success. Channel %s is now waiting for messages",
            self._inbound_identity,
        )

    def _read_optional(self, key: str) -> str | None:
        if not self._attributes.has(key):
            return None
        return self._attributes.get(key, str)

    def _fail(self) -> None:
        if not self._advance(EngineState.ERROR):
            logger.warning("Engine already %s, not moving to ERROR", self.state.name)

    def _advance(self, target: EngineState) -> bool:
        # module-state must end up matching the final state even when
        # stop() races startup.
        with self._state_lock:
            if not self._machine.try_transition(target):
                return False
            self._publish_state(target)
        return True

    def _publish_state(self, state: EngineState) -> None:
        try:
            if not self._attributes.has(MODULE_STATE):
                self._attributes.add(MODULE_STATE, state.value)
            else:
                self._attributes.set(MODULE_STATE, state.value)
        except AttributeStoreError as exc:
            logger.error("Attribute %s not set: %s", MODULE_STATE, exc)

    def _teardown(self) -> None:
        failed = self._registry.close_all(self._settings.teardown_workers)
        if failed:
            logger.error("Failed to close forked channels: %s", ", ".join(failed))
        self._default.close()
        close_channel(self._inbound)

