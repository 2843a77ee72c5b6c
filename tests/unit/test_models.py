"""Tests for channelfork models — frozen messages, states and stats."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from channelfork.models.engine import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    EngineState,
    RouterStats,
)
from channelfork.models.messages import InboundMessage


class TestInboundMessage:
    def test_size_and_timestamp(self):
        message = InboundMessage(payload=b"abc", sequence_id=1)
        assert message.size == 3
        assert message.received_at.tzinfo is not None

    def test_frozen(self):
        message = InboundMessage(payload=b"abc", sequence_id=1)
        with pytest.raises(ValidationError):
            message.payload = b"other"


class TestEngineModels:
    def test_every_state_has_transition_entry(self):
        assert set(VALID_TRANSITIONS) == set(EngineState)

    def test_terminal_states(self):
        assert TERMINAL_STATES == {EngineState.ERROR, EngineState.STOPPED}
        for state in TERMINAL_STATES:
            assert VALID_TRANSITIONS[state] == set()

    def test_state_values(self):
        assert [s.value for s in EngineState] == ["starting", "running", "error", "stopped"]

    def test_router_stats_defaults(self):
        stats = RouterStats()
        assert stats.received == stats.routed == stats.dropped == 0
