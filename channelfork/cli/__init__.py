"""channelfork CLI — Typer-based command-line interface.

Provides the ``channelfork`` command with subcommands for replaying a
message file through a local fork engine and for trying out routing
expressions against a single payload.

All output uses Rich for formatted terminal display.
"""
