"""Destination registry — one open channel per forked identifier.

Invariants:
- At most one channel is ever opened per identifier.  Once inserted an
  entry is reused, never replaced.
- A failed open leaves no entry, no creation lock and nothing to close.
- Opens for *different* identifiers proceed concurrently; opens for the
  same identifier are serialized by a per-identifier lock.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from channelfork.bridge.transport import Channel, ChannelTransport, TransportError
from channelfork.models.messages import DeliveryMode

logger = logging.getLogger(__name__)


class DestinationOpenError(RuntimeError):
    """Raised when a destination channel cannot be opened."""


class RegistryClosedError(RuntimeError):
    """Raised when resolving a destination after teardown has begun."""


def close_channel(channel: Channel | None) -> bool:
    """Close *channel*, logging instead of raising.

    Returns ``True`` if the channel is closed afterwards (or was ``None``).
    """
    if channel is None:
        return True
    try:
        channel.close()
        return True
    except Exception:  # noqa: BLE001
        logger.exception("Failed to close channel: %s", getattr(channel, "name", channel))
        return False


class DestinationRegistry:
    """Thread-safe map of destination identifier -> open channel.

    Parameters
    ----------
    transport:
        Transport used to open new destination channels.
    delivery_mode:
        Delivery mode passed to every ``open`` call.
    """

    def __init__(
        self,
        transport: ChannelTransport,
        delivery_mode: DeliveryMode = DeliveryMode.PERSISTENT,
    ) -> None:
        self._transport = transport
        self._delivery_mode = delivery_mode
        self._channels: dict[str, Channel] = {}
        self._creation_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._channels

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lookup / create
    # ------------------------------------------------------------------

    def get(self, identifier: str) -> Channel | None:
        """Return the channel for *identifier* without creating it."""
        with self._lock:
            return self._channels.get(identifier)

    def identifiers(self) -> list[str]:
        """Sorted snapshot of every registered identifier."""
        with self._lock:
            return sorted(self._channels)

    def resolve(self, identifier: str) -> Channel:
        """Return the channel for *identifier*, opening it on first use.

        Raises
        ------
        DestinationOpenError
            If the transport refuses to open the channel.
        RegistryClosedError
            If ``close_all`` has already run.
        """
        while True:
            with self._lock:
                if self._closed:
                    raise RegistryClosedError(f"Registry closed, cannot resolve {identifier}")
                channel = self._channels.get(identifier)
                if channel is not None:
                    return channel
                creation_lock = self._creation_locks.setdefault(identifier, threading.Lock())

            with creation_lock:
                with self._lock:
                    # Another thread may have finished the open while we waited.
                    channel = self._channels.get(identifier)
                    if channel is not None:
                        return channel
                    if self._closed:
                        raise RegistryClosedError(
                            f"Registry closed, cannot resolve {identifier}"
                        )
                    if self._creation_locks.get(identifier) is not creation_lock:
                        # The previous holder failed and dropped this lock.
                        continue

                try:
                    channel = self._transport.open(identifier, self._delivery_mode)
                except (TransportError, ValueError) as exc:
                    with self._lock:
                        self._creation_locks.pop(identifier, None)
                    raise DestinationOpenError(
                        f"Failed to open channel with name {identifier}: {exc}"
                    ) from exc

                with self._lock:
                    self._creation_locks.pop(identifier, None)
                    if self._closed:
                        # Teardown won the race; do not leak the new handle.
                        close_channel(channel)
                        raise RegistryClosedError(
                            f"Registry closed while opening {identifier}"
                        )
                    self._channels[identifier] = channel

            logger.info("Opened forked channel %s", identifier)
            return channel

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close_all(self, max_workers: int = 8) -> list[str]:
        """Close every registered channel in parallel.

        Marks the registry closed first so no new channel can be added.
        Individual failures are logged and do not stop the others.

        Returns the identifiers whose close failed.
        """
        with self._lock:
            self._closed = True
            channels = dict(self._channels)

        if not channels:
            return []

        with ThreadPoolExecutor(
            max_workers=max(1, min(max_workers, len(channels))),
            thread_name_prefix="channelfork-close",
        ) as pool:
            results = dict(zip(channels, pool.map(close_channel, channels.values())))

        failed = sorted(name for name, ok in results.items() if not ok)
        logger.info(
            "Closed %d/%d forked channels", len(channels) - len(failed), len(channels)
        )
        return failed
