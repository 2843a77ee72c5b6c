"""Well-known attribute keys read and written by the fork engine."""

from __future__ import annotations

# Inbound channel identity, relative to the node or absolute (required).
INCOMING_CHANNEL = "incoming-channel"

# JSONPath expression selecting the routing key (optional, empty = default).
MESSAGE_FILTER = "message-filter"

# Sorted list of every destination identifier the engine has forked to.
FORKED_CHANNELS = "forked-channels"

# Current EngineState value.
MODULE_STATE = "module-state"
