"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and CHANNELFORK_* environment variables.  The
per-run routing configuration (inbound channel, message filter) is not
held here: it is read from the attribute store when the engine starts.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from channelfork.models.messages import DeliveryMode, PayloadFormat


class ForkSettings(BaseSettings):
    """Process-level settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export CHANNELFORK_NODE_IDENTITY=ndn:/gateway-7
        export CHANNELFORK_PAYLOAD_FORMAT=mqtt
        export CHANNELFORK_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHANNELFORK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Node / transport
    node_identity: str = "ndn:/channelfork"
    delivery_mode: DeliveryMode = DeliveryMode.PERSISTENT
    history_size: int = 128

    # Routing
    payload_format: PayloadFormat = PayloadFormat.JSON

    # Teardown
    teardown_workers: int = 8

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton — import as `from channelfork.config import settings`
settings = ForkSettings()
