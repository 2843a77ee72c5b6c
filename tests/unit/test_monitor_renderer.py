"""Unit tests for RunRenderer — Rich panel output and state styling."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel

from channelfork.models.engine import EngineState, RouterStats
from channelfork.monitor.renderer import _STATE_LABELS, _STATE_STYLES, RunRenderer, RunSummary


def _make_summary(state: EngineState = EngineState.STOPPED, **overrides) -> RunSummary:
    defaults = {
        "state": state,
        "inbound_identity": "ndn:/test-fork",
        "message_filter": "$.sensoridentifier",
        "default_identity": "ndn:/node/DEFAULT-DATA",
        "stats": RouterStats(received=3, routed=3, destinations=2),
        "destinations": {"ndn:/test-fork/S1": 2, "ndn:/test-fork/S2": 1},
    }
    defaults.update(overrides)
    return RunSummary(**defaults)


def _render_text(summary: RunSummary) -> str:
    console = Console(record=True, width=160)
    RunRenderer(console=console).print_summary(summary)
    return console.export_text()


class TestRunRenderer:
    def test_returns_panel(self):
        assert isinstance(RunRenderer().render_summary(_make_summary()), Panel)

    def test_every_state_styled(self):
        assert set(_STATE_STYLES) == set(EngineState)
        assert set(_STATE_LABELS) == set(EngineState)

    def test_lists_destinations_and_counts(self):
        text = _render_text(_make_summary())
        assert "ndn:/test-fork/S1" in text
        assert "ndn:/test-fork/S2" in text
        assert "Received: 3" in text

    def test_marks_default_destination(self):
        summary = _make_summary(destinations={"ndn:/node/DEFAULT-DATA": 4}, message_filter=None)
        text = _render_text(summary)
        assert "default" in text
        assert "none, default channel" in text

    def test_empty_run(self):
        text = _render_text(_make_summary(destinations={}, stats=RouterStats()))
        assert "no destinations" in text

    def test_error_border(self):
        panel = RunRenderer().render_summary(_make_summary(EngineState.ERROR))
        assert panel.border_style == "bold red"
