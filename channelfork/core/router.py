"""Router — the per-message fork decision.

For each inbound payload:

1. No routing expression configured -> publish on the default channel.
2. Extract the routing key; decode or path errors drop the message.
3. Empty or missing key -> drop the message (no channel, no attribute).
4. Resolve ``<inbound>/<key>`` in the registry, publish the original bytes,
   then record the identifier in the known-destinations set and write the
   full sorted snapshot to the ``forked-channels`` attribute.

The router is the inbound subscriber: it may be called concurrently from
several delivery threads and never lets a per-message failure escape.
"""

from __future__ import annotations

import itertools
import logging
import threading

from channelfork.bridge.attributes import AttributeStore, AttributeStoreError
from channelfork.bridge.transport import TransportError
from channelfork.core.default_destination import DefaultDestination
from channelfork.core.extractor import ExtractionError, FieldExtractor
from channelfork.core.identifiers import destination_identifier
from channelfork.core.registry import (
    DestinationOpenError,
    DestinationRegistry,
    RegistryClosedError,
)
from channelfork.models.attributes import FORKED_CHANNELS
from channelfork.models.engine import RouterStats
from channelfork.models.messages import InboundMessage

logger = logging.getLogger(__name__)


class Router:
    """Routes inbound payloads to forked or default destinations.

    Parameters
    ----------
    inbound_identity:
        Identifier of the inbound channel; prefix of every forked name.
    registry:
        Registry owning the forked channels.
    default_destination:
        Fallback used when no routing expression is configured.
    attributes:
        Store receiving the ``forked-channels`` snapshot.
    extractor:
        Routing key extractor, or ``None`` to send everything to the
        default destination.
    """

    def __init__(
        self,
        inbound_identity: str,
        registry: DestinationRegistry,
        default_destination: DefaultDestination,
        attributes: AttributeStore,
        extractor: FieldExtractor | None = None,
    ) -> None:
        self._inbound_identity = inbound_identity
        self._registry = registry
        self._default = default_destination
        self._attributes = attributes
        self._extractor = extractor

        self._known: set[str] = set()
        self._known_lock = threading.Lock()

        self._sequence = itertools.count(1)
        self._counts = {"received": 0, "routed": 0, "defaulted": 0, "dropped": 0}
        self._counts_lock = threading.Lock()

    @property
    def inbound_identity(self) -> str:
        return self._inbound_identity

    @property
    def extractor(self) -> FieldExtractor | None:
        return self._extractor

    def __call__(self, payload: bytes) -> None:
        self.dispatch(payload)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, payload: bytes) -> str | None:
        """Route one payload.

        Returns the identifier the payload was published to, or ``None``
        if it was dropped.  Never raises for per-message failures.
        """
        with self._counts_lock:
            message = InboundMessage(payload=payload, sequence_id=next(self._sequence))
            self._counts["received"] += 1
        logger.info("ID: %d, Message received = %d bytes", message.sequence_id, message.size)

        try:
            if self._extractor is None:
                target = self._publish_default(message)
                self._count("defaulted" if target else "dropped")
            else:
                target = self._publish_forked(message, self._extractor)
                self._count("routed" if target else "dropped")
        except Exception:  # noqa: BLE001
            # Nothing derived from one message may reach the subscription.
            logger.exception("ID: %d, Unexpected error while routing", message.sequence_id)
            self._count("dropped")
            return None
        return target

    def _publish_forked(self, message: InboundMessage, extractor: FieldExtractor) -> str | None:
        seq = message.sequence_id

        try:
            routing_key = extractor.extract(message.payload)
        except ExtractionError as exc:
            logger.error(
                "ID: %d, Failed to extract %s from message: %s",
                seq,
                extractor.expression,
                exc,
            )
            return None
        logger.debug("ID: %d, routing key %r from payload", seq, routing_key)

        if not routing_key:
            logger.info(
                "ID: %d, Payload does not contain identifier, filter: %s failed",
                seq,
                extractor.expression,
            )
            return None

        identifier = destination_identifier(self._inbound_identity, routing_key)
        try:
            channel = self._registry.resolve(identifier)
        except (DestinationOpenError, RegistryClosedError) as exc:
            logger.error("ID: %d, Failed to open channel with name %s: %s", seq, identifier, exc)
            return None

        try:
            channel.publish(message.payload)
        except TransportError as exc:
            logger.error("ID: %d, Failed to publish message to %s: %s", seq, identifier, exc)
            return None

        self._record_destination(identifier)
        return identifier

    def _publish_default(self, message: InboundMessage) -> str | None:
        identifier = self._default.identifier
        logger.info(
            "ID: %d, No message-filter found, publishing on default channel: %s",
            message.sequence_id,
            identifier,
        )
        try:
            self._default.publish(message.payload)
        except (DestinationOpenError, RegistryClosedError, TransportError) as exc:
            logger.error("Failed to publish on default channel: %s: %s", identifier, exc)
            return None
        return identifier

    # ------------------------------------------------------------------
    # Known destinations
    # ------------------------------------------------------------------

    def _record_destination(self, identifier: str) -> None:
        # Add and snapshot under one lock so concurrent writers never
        # publish a smaller set after a larger one.
        with self._known_lock:
            self._known.add(identifier)
            snapshot = sorted(self._known)
            try:
                self._attributes.set(FORKED_CHANNELS, snapshot)
            except AttributeStoreError as exc:
                logger.error("Failed to update %s attribute: %s", FORKED_CHANNELS, exc)

    def known_destinations(self) -> list[str]:
        """Sorted snapshot of every identifier successfully published to."""
        with self._known_lock:
            return sorted(self._known)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def _count(self, name: str) -> None:
        with self._counts_lock:
            self._counts[name] += 1

    def stats(self) -> RouterStats:
        """Return a snapshot of dispatch counters."""
        with self._counts_lock:
            counts = dict(self._counts)
        return RouterStats(destinations=len(self.known_destinations()), **counts)
