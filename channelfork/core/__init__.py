"""Fork engine core — extraction, destination registry, routing, lifecycle."""

from channelfork.core.default_destination import DefaultDestination
from channelfork.core.engine import ConfigurationError, ForkEngine
from channelfork.core.extractor import (
    ExtractionError,
    FieldExtractor,
    InvalidExpressionError,
    PayloadDecodeError,
)
from channelfork.core.registry import (
    DestinationOpenError,
    DestinationRegistry,
    RegistryClosedError,
)
from channelfork.core.router import Router
from channelfork.core.state_machine import EngineStateMachine, InvalidTransitionError

__all__ = [
    "ConfigurationError",
    "DefaultDestination",
    "DestinationOpenError",
    "DestinationRegistry",
    "EngineStateMachine",
    "ExtractionError",
    "FieldExtractor",
    "ForkEngine",
    "InvalidExpressionError",
    "InvalidTransitionError",
    "PayloadDecodeError",
    "RegistryClosedError",
    "Router",
]
