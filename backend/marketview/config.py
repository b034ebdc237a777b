"""Process configuration read from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .market.databento_client import DEFAULT_DATASET

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3001
DEFAULT_SEND_QUEUE_SIZE = 256


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable settings, loaded once at startup."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    databento_api_key: str | None = None
    databento_dataset: str = DEFAULT_DATASET
    log_level: str = "INFO"
    send_queue_size: int = DEFAULT_SEND_QUEUE_SIZE

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the environment.

        - HOST, PORT: bind address (bad PORT values fall back to the default)
        - DATABENTO_API_KEY: set and non-blank selects real market data
        - DATABENTO_DATASET: vendor dataset, default GLBX.MDP3
        - LOG_LEVEL: root log level name
        - LIVE_SEND_QUEUE_SIZE: per-connection bound on queued live messages
        """
        api_key = os.environ.get("DATABENTO_API_KEY", "").strip()
        return cls(
            host=os.environ.get("HOST", DEFAULT_HOST),
            port=_int_env("PORT", DEFAULT_PORT),
            databento_api_key=api_key or None,
            databento_dataset=os.environ.get("DATABENTO_DATASET", "").strip() or DEFAULT_DATASET,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            send_queue_size=_int_env("LIVE_SEND_QUEUE_SIZE", DEFAULT_SEND_QUEUE_SIZE),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%d, using %d", name, value, default)
        return default
    return value
