"""Engine lifecycle state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Each terminal state (ERROR, STOPPED) reached at most once per run
- Transitions serialized, since ``stop`` arrives on a foreign thread
"""

from __future__ import annotations

import threading

from channelfork.models.engine import TERMINAL_STATES, VALID_TRANSITIONS, EngineState


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class EngineStateMachine:
    """Tracks the state of one engine run."""

    def __init__(self, initial: EngineState = EngineState.STARTING) -> None:
        self._state = initial
        self._lock = threading.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def transition(self, target: EngineState) -> EngineState:
        """Move to *target*, returning the previous state.

        Raises
        ------
        InvalidTransitionError
            If *target* is not reachable from the current state.
        """
        with self._lock:
            current = self._state
            allowed = VALID_TRANSITIONS.get(current, set())
            if target not in allowed:
                raise InvalidTransitionError(
                    f"Cannot transition engine from {current.value} to {target.value}. "
                    f"Allowed: {sorted(s.value for s in allowed)}"
                )
            self._state = target
            return current

    def try_transition(self, target: EngineState) -> bool:
        """Like ``transition`` but returns ``False`` instead of raising."""
        try:
            self.transition(target)
        except InvalidTransitionError:
            return False
        return True

    def get_available_transitions(self) -> set[EngineState]:
        """Return the set of valid target states."""
        return set(VALID_TRANSITIONS.get(self._state, set()))
