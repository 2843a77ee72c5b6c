"""channelfork: content-based fan-out of one pub-sub channel into many.

Each message arriving on an inbound channel is inspected with a JSONPath
expression; the extracted value names the destination channel
``<inbound>/<value>`` the message is republished on.  Without an
expression every message goes to ``<node>/DEFAULT-DATA``.

  - Thread-safe destination registry, one channel per routing key
  - Lazily-opened default destination, one per engine
  - Known destinations exposed as a sorted ``forked-channels`` attribute
  - STARTING -> RUNNING -> STOPPED / ERROR lifecycle with parallel teardown
  - Env-driven settings (CHANNELFORK_*) and a Typer/Rich CLI
"""

__version__ = "0.2.0"
__description__ = "Content-based fan-out router for pub-sub channels"

from channelfork.core.engine import ForkEngine
from channelfork.core.router import Router
from channelfork.models.engine import EngineState

__all__ = ["EngineState", "ForkEngine", "Router", "__version__"]
