"""channelfork data models — all Pydantic v2, all frozen (immutable)."""

from channelfork.models.engine import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    EngineState,
    RouterStats,
    StopReason,
)
from channelfork.models.messages import DeliveryMode, InboundMessage, PayloadFormat

__all__ = [
    "DeliveryMode",
    "EngineState",
    "InboundMessage",
    "PayloadFormat",
    "RouterStats",
    "StopReason",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
]
