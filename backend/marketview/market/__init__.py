"""Market data subsystem.

Public API:
    MarketDataService          - Abstract interface for data providers
    create_market_data_service - Factory that selects simulator or Databento
    create_stream_router       - FastAPI router factory for the live WebSocket
    Schema, TradeRecord, OhlcvRecord, HistoricalRequest, HistoricalResponse
                               - Immutable record types
    ServiceError               - Base of the error taxonomy
"""

from .errors import ServiceError
from .factory import create_market_data_service
from .interface import MarketDataService
from .models import HistoricalRequest, HistoricalResponse, OhlcvRecord, Schema, TradeRecord
from .stream import create_stream_router

__all__ = [
    "MarketDataService",
    "ServiceError",
    "Schema",
    "TradeRecord",
    "OhlcvRecord",
    "HistoricalRequest",
    "HistoricalResponse",
    "create_market_data_service",
    "create_stream_router",
]
