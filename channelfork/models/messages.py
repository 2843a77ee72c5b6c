"""Inbound message and channel option models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DeliveryMode(str, Enum):
    """How a channel retains published messages."""

    PERSISTENT = "persistent"
    VOLATILE = "volatile"


class PayloadFormat(str, Enum):
    """Framing of the bytes arriving on the inbound channel."""

    JSON = "json"  # the payload is the JSON document itself
    MQTT = "mqtt"  # a JSON-serialized MQTT message with a base64 payload


class InboundMessage(BaseModel):
    """One message received on the inbound channel.

    Owned by the router for the duration of a single dispatch.  The
    ``sequence_id`` exists only to correlate log lines.
    """

    model_config = ConfigDict(frozen=True)

    payload: bytes
    sequence_id: int
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def size(self) -> int:
        return len(self.payload)
