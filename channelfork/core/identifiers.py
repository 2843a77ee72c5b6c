"""Channel identifier construction.

The formats here are part of the external contract: downstream consumers
subscribe to forked channels by name, so they must not change.
"""

from __future__ import annotations

import re

SEPARATOR = "/"

# Suffix appended to the node identity for the fallback channel.
DEFAULT_CHANNEL_SUFFIX = "/DEFAULT-DATA"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def destination_identifier(inbound_identity: str, routing_key: str) -> str:
    """``<inbound>/<key>`` — plain concatenation, no normalization."""
    return f"{inbound_identity}{SEPARATOR}{routing_key}"


def default_identifier(node_identity: str) -> str:
    """``<node>/DEFAULT-DATA``."""
    return f"{node_identity}{DEFAULT_CHANNEL_SUFFIX}"


def join_identity(base: str, name: str) -> str:
    """Resolve a configured channel name against the node identity.

    Absolute names (``ndn:/test-fork``) are used as-is.  Relative names
    are joined onto *base* with exactly one separator.  A trailing separator
    is dropped in both cases.
    """
    if _SCHEME_RE.match(name):
        return name.rstrip(SEPARATOR)
    return f"{base.rstrip(SEPARATOR)}{SEPARATOR}{name.strip(SEPARATOR)}"
