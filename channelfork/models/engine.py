"""Engine state machine models — lifecycle states and router counters."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EngineState(str, Enum):
    """Externally reported state of a fork engine run."""

    STARTING = "starting"
    RUNNING = "running"
    ERROR = "error"
    STOPPED = "stopped"


# Valid state transitions — enforced structurally by EngineStateMachine.
# Terminal states (ERROR, STOPPED) have no outgoing transitions.
VALID_TRANSITIONS: dict[EngineState, set[EngineState]] = {
    EngineState.STARTING: {EngineState.RUNNING, EngineState.ERROR, EngineState.STOPPED},
    EngineState.RUNNING: {EngineState.STOPPED, EngineState.ERROR},
    EngineState.ERROR: set(),  # terminal
    EngineState.STOPPED: set(),  # terminal
}

TERMINAL_STATES: frozenset[EngineState] = frozenset(
    {EngineState.ERROR, EngineState.STOPPED}
)


class StopReason(str, Enum):
    """Why an engine was asked to stop."""

    USER_DIRECTED = "user_directed"
    SHUTDOWN = "shutdown"
    UNLOADED = "unloaded"
    ERROR = "error"


class RouterStats(BaseModel):
    """Point-in-time snapshot of the router's dispatch counters."""

    model_config = ConfigDict(frozen=True)

    received: int = 0
    routed: int = 0  # published to a keyed destination
    defaulted: int = 0  # published to the default destination
    dropped: int = 0
    destinations: int = 0
