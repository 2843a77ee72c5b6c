"""Transport bridge — the pub-sub channel interface consumed by the engine.

Bridge boundary
---------------
The fork engine never talks to a concrete messaging system.  It depends
on two small protocols:

- ``ChannelTransport.open(identifier, mode)`` returns a ``Channel``.
- ``Channel`` offers ``publish``, ``subscribe`` and ``close``.

Any networked transport can be adapted to these protocols.  This module
also ships ``LocalTransport``, an in-process implementation used by the
CLI ``replay`` command and by the test suite:

1. Handles opened on the same identifier share one topic, so a message
   published through any handle reaches every subscriber of that topic.
2. Delivery is synchronous on the publishing thread.
3. Each topic keeps a bounded history (``max_history``) for inspection;
   ``DeliveryMode.VOLATILE`` topics keep only the latest message.
"""

from __future__ import annotations

import collections
import logging
import re
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from channelfork.models.messages import DeliveryMode

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], None]

# scheme ":" "/" segment ("/" segment)*  — e.g. ndn:/test-fork/S1
_IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:(/[^/\s]+)+/?$")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TransportError(RuntimeError):
    """Raised when a transport-level operation fails."""


class ChannelOpenError(TransportError):
    """Raised when a channel cannot be opened (bad identifier, transport down)."""


class ChannelPublishError(TransportError):
    """Raised when a publish on an open channel fails."""


class ChannelCloseError(TransportError):
    """Raised when a channel fails to close cleanly."""


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

@runtime_checkable
class Channel(Protocol):
    """A handle on one named pub-sub channel."""

    @property
    def name(self) -> str:
        """The identifier the channel was opened with."""
        ...

    @property
    def is_open(self) -> bool:
        """``False`` once ``close`` has been called."""
        ...

    def publish(self, payload: bytes) -> None:
        """Publish raw bytes.  Raises ``ChannelPublishError`` on failure."""
        ...

    def subscribe(self, handler: MessageHandler) -> None:
        """Invoke *handler* once per message published on the channel."""
        ...

    def close(self) -> None:
        """Release the handle.  Must be idempotent."""
        ...


@runtime_checkable
class ChannelTransport(Protocol):
    """Factory for channels on one node."""

    @property
    def default_identity(self) -> str:
        """The node's own identity, used as a prefix for relative names."""
        ...

    def open(self, identifier: str, mode: DeliveryMode) -> Channel:
        """Open a channel.  Raises ``ChannelOpenError`` on failure."""
        ...


def is_valid_identifier(identifier: str) -> bool:
    """Return ``True`` if *identifier* is a well-formed ``scheme:/path`` name."""
    return bool(_IDENTIFIER_RE.match(identifier))


# ---------------------------------------------------------------------------
# Local in-process implementation
# ---------------------------------------------------------------------------

class _Topic:
    """Shared state behind every handle opened on one identifier."""

    def __init__(self, name: str, mode: DeliveryMode, max_history: int) -> None:
        self.name = name
        self.mode = mode
        maxlen = 1 if mode == DeliveryMode.VOLATILE else max_history
        self.history: collections.deque[bytes] = collections.deque(maxlen=maxlen)
        self.published = 0
        self.subscribers: list[MessageHandler] = []
        self.lock = threading.Lock()


class LocalChannel:
    """A handle on a ``LocalTransport`` topic."""

    def __init__(self, topic: _Topic) -> None:
        self._topic = topic
        self._handlers: list[MessageHandler] = []
        self._open = True
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"LocalChannel({self._topic.name!r}, {state})"

    @property
    def name(self) -> str:
        return self._topic.name

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def published_count(self) -> int:
        """Messages published on the topic through any handle."""
        return self._topic.published

    def publish(self, payload: bytes) -> None:
        if not self._open:
            raise ChannelPublishError(f"Channel {self.name} is closed")

        topic = self._topic
        with topic.lock:
            topic.history.append(payload)
            topic.published += 1
            handlers = list(topic.subscribers)

        for handler in handlers:
            handler(payload)

    def subscribe(self, handler: MessageHandler) -> None:
        if not self._open:
            raise ChannelOpenError(f"Cannot subscribe on closed channel {self.name}")
        with self._topic.lock:
            self._topic.subscribers.append(handler)
        self._handlers.append(handler)

    def latest(self) -> bytes | None:
        """Return the most recent message on the topic, if any."""
        with self._topic.lock:
            return self._topic.history[-1] if self._topic.history else None

    def history(self) -> list[bytes]:
        """Return the retained messages on the topic, oldest first."""
        with self._topic.lock:
            return list(self._topic.history)

    def close(self) -> None:
        with self._lock:
            if not self._open:
                return
            self._open = False
        with self._topic.lock:
            for handler in self._handlers:
                try:
                    self._topic.subscribers.remove(handler)
                except ValueError:
                    pass
        self._handlers.clear()
        logger.debug("Closed channel %s", self.name)


class LocalTransport:
    """In-process ``ChannelTransport`` with shared topics.

    Parameters
    ----------
    default_identity:
        Identity of the local node, e.g. ``"ndn:/channelfork"``.
    max_history:
        Maximum number of messages each persistent topic retains.
    """

    def __init__(
        self,
        default_identity: str = "ndn:/channelfork",
        *,
        max_history: int = 128,
    ) -> None:
        if not is_valid_identifier(default_identity):
            raise ValueError(f"Invalid node identity: {default_identity!r}")
        self._default_identity = default_identity
        self._max_history = max_history
        self._topics: dict[str, _Topic] = {}
        self._open_calls: collections.Counter[str] = collections.Counter()
        self._handles: list[LocalChannel] = []
        self._lock = threading.Lock()

    @property
    def default_identity(self) -> str:
        return self._default_identity

    def open(self, identifier: str, mode: DeliveryMode = DeliveryMode.PERSISTENT) -> LocalChannel:
        if not isinstance(identifier, str) or not is_valid_identifier(identifier):
            raise ChannelOpenError(f"Malformed channel identifier: {identifier!r}")

        with self._lock:
            self._open_calls[identifier] += 1
            topic = self._topics.get(identifier)
            if topic is None:
                topic = _Topic(identifier, mode, self._max_history)
                self._topics[identifier] = topic
            channel = LocalChannel(topic)
            self._handles.append(channel)

        logger.debug("Opened channel %s (%s)", identifier, mode.value)
        return channel

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def open_count(self, identifier: str) -> int:
        """How many times ``open`` was called for *identifier*."""
        with self._lock:
            return self._open_calls[identifier]

    def topics(self) -> list[str]:
        """Identifiers of every topic created so far, sorted."""
        with self._lock:
            return sorted(self._topics)

    def published_counts(self) -> dict[str, int]:
        """Messages published per topic."""
        with self._lock:
            return {name: topic.published for name, topic in self._topics.items()}

    def handles(self, identifier: str | None = None) -> list[LocalChannel]:
        """Every handle opened, optionally filtered by identifier."""
        with self._lock:
            if identifier is None:
                return list(self._handles)
            return [h for h in self._handles if h.name == identifier]
