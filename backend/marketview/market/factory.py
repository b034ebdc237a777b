"""Factory for creating market data services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .interface import MarketDataService

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


def create_market_data_service(settings: Settings) -> MarketDataService:
    """Create the market data service selected by the settings.

    - databento_api_key set → DatabentoService (real market data)
    - Otherwise → SimulatorService (synthetic data)

    Called once at startup; the result is shared read-only by all requests.
    """
    if settings.databento_api_key:
        from .databento_client import DatabentoService

        logger.info("Market data service: Databento (real data)")
        return DatabentoService(
            api_key=settings.databento_api_key,
            dataset=settings.databento_dataset,
        )
    else:
        from .simulator import SimulatorService

        logger.info("Market data service: simulator (set DATABENTO_API_KEY for real data)")
        return SimulatorService()
