"""Bridges to the engine's external collaborators.

- ``transport``  — pub-sub channels (open / subscribe / publish / close).
- ``attributes`` — key/value attribute store for configuration and state.

Both are consumed as protocols; the in-process implementations here back
the CLI and the test suite.
"""
