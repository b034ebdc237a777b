"""Data models for market data.

Prices are fixed-point integers scaled by ``PRICE_SCALE`` and timestamps are
nanoseconds since the Unix epoch, matching what exchange feeds deliver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .errors import InvalidSchemaError

PRICE_SCALE = 1_000_000_000


class Schema(str, Enum):
    """Kind of market data requested."""

    TRADES = "trades"
    OHLCV_1S = "ohlcv-1s"
    OHLCV_1M = "ohlcv-1m"

    @classmethod
    def parse(cls, value: str) -> Schema:
        """Parse the canonical kebab-case form, raising InvalidSchemaError otherwise."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidSchemaError(
                f"{value}. Expected: trades, ohlcv-1s, or ohlcv-1m"
            ) from None

    @property
    def is_ohlcv(self) -> bool:
        return self is not Schema.TRADES

    @property
    def bar_seconds(self) -> int:
        """Bar duration in seconds. Zero for trades."""
        return {Schema.TRADES: 0, Schema.OHLCV_1S: 1, Schema.OHLCV_1M: 60}[self]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class TradeRecord:
    """A single trade tick."""

    ts_event_unix_ns: int
    symbol: str
    price_i64: int
    size_u32: int

    @property
    def price(self) -> float:
        return self.price_i64 / PRICE_SCALE

    def to_dict(self) -> dict:
        return {
            "ts_event_unix_ns": self.ts_event_unix_ns,
            "symbol": self.symbol,
            "price_i64": self.price_i64,
            "size_u32": self.size_u32,
        }


@dataclass(frozen=True, slots=True)
class OhlcvRecord:
    """A single OHLCV bar. ``ts_event_unix_ns`` is the bar open time.

    Every bar satisfies ``low <= open <= high`` and ``low <= close <= high``.
    """

    ts_event_unix_ns: int
    symbol: str
    open_i64: int
    high_i64: int
    low_i64: int
    close_i64: int
    volume_u64: int

    def to_dict(self) -> dict:
        return {
            "ts_event_unix_ns": self.ts_event_unix_ns,
            "symbol": self.symbol,
            "open_i64": self.open_i64,
            "high_i64": self.high_i64,
            "low_i64": self.low_i64,
            "close_i64": self.close_i64,
            "volume_u64": self.volume_u64,
        }


@dataclass(frozen=True, slots=True)
class HistoricalRequest:
    """Body of ``POST /api/historical``.

    ``schema`` and the timestamps stay raw strings here; services validate them
    so that bad values surface as ServiceError rather than framework errors.
    """

    symbols: list[str]
    schema: str
    start_rfc3339: str
    end_rfc3339: str
    stype_in: str = "parent"
    limit: int = 1000


@dataclass(frozen=True, slots=True)
class HistoricalResponse:
    """Historical query result. The schema tag always matches the data kind."""

    schema: Schema
    data: list[TradeRecord] | list[OhlcvRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "schema": self.schema.value,
            "data": [record.to_dict() for record in self.data],
        }


# --- Live messages ---


@dataclass(frozen=True, slots=True)
class ConnectedMessage:
    """First message of every live session, echoing the subscription."""

    symbols: list[str]
    schema: str

    def to_dict(self) -> dict:
        return {"type": "connected", "symbols": list(self.symbols), "schema": self.schema}


@dataclass(frozen=True, slots=True)
class TradeMessage:
    trade: TradeRecord

    def to_dict(self) -> dict:
        return {"type": "trade", **self.trade.to_dict()}


@dataclass(frozen=True, slots=True)
class OhlcvMessage:
    bar: OhlcvRecord

    def to_dict(self) -> dict:
        return {"type": "ohlcv", **self.bar.to_dict()}


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    """Terminal message: nothing follows it on the same stream."""

    message: str

    def to_dict(self) -> dict:
        return {"type": "error", "message": self.message}


LiveMessage = Union[ConnectedMessage, TradeMessage, OhlcvMessage, ErrorMessage]


@dataclass(frozen=True, slots=True)
class ErrorResponse:
    error: str
    code: int

    def to_dict(self) -> dict:
        return {"error": self.error, "code": self.code}
