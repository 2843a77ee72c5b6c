"""Default destination — the single fallback channel of one engine.

Messages that carry no routing expression go here.  The channel is
opened lazily by the first such message and reused for every later one;
concurrent first messages open it exactly once.
"""

from __future__ import annotations

import logging
import threading

from channelfork.bridge.transport import Channel, ChannelTransport, TransportError
from channelfork.core.registry import (
    DestinationOpenError,
    RegistryClosedError,
    close_channel,
)
from channelfork.models.messages import DeliveryMode

logger = logging.getLogger(__name__)


class DefaultDestination:
    """Lazily-opened fallback channel, owned by one engine instance."""

    def __init__(
        self,
        transport: ChannelTransport,
        identifier: str,
        delivery_mode: DeliveryMode = DeliveryMode.PERSISTENT,
    ) -> None:
        self._transport = transport
        self._identifier = identifier
        self._delivery_mode = delivery_mode
        self._channel: Channel | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def channel(self) -> Channel | None:
        """The open channel, or ``None`` if no message has needed it yet."""
        return self._channel

    def resolve(self) -> Channel:
        """Return the default channel, opening it on first call."""
        channel = self._channel
        if channel is not None:
            return channel

        with self._lock:
            if self._closed:
                raise RegistryClosedError(
                    f"Default destination {self._identifier} already closed"
                )
            if self._channel is None:
                try:
                    self._channel = self._transport.open(
                        self._identifier, self._delivery_mode
                    )
                except (TransportError, ValueError) as exc:
                    raise DestinationOpenError(
                        f"Failed to open default channel {self._identifier}: {exc}"
                    ) from exc
                logger.info("Opened default channel %s", self._identifier)
            return self._channel

    def publish(self, payload: bytes) -> None:
        """Publish *payload* on the default channel."""
        if self._closed:
            raise RegistryClosedError(
                f"Default destination {self._identifier} already closed"
            )
        self.resolve().publish(payload)

    def close(self) -> bool:
        """Close the channel if it was ever opened.  Safe to call twice."""
        with self._lock:
            self._closed = True
            channel = self._channel
        return close_channel(channel)
