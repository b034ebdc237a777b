"""Abstract interface for market data services."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

from .errors import InvalidTimeFormatError
from .models import HistoricalRequest, HistoricalResponse, LiveMessage

LiveStream = AsyncGenerator[LiveMessage, None]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Full date-time with an explicit offset; the fraction may carry any number of digits
_RFC3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)


class MarketDataService(ABC):
    """Contract for market data providers.

    Implementations own only their fixed configuration (API key, dataset,
    base price). Each call builds its own state, so one instance can serve
    concurrent requests and live sessions.

    Usage:
        service = create_market_data_service(settings)
        response = await service.get_historical(request)
        stream = await service.subscribe_live(["ES.FUT"], "trades")
        async for message in stream:
            ...
        await stream.aclose()
    """

    @abstractmethod
    async def get_historical(self, request: HistoricalRequest) -> HistoricalResponse:
        """Fetch historical data for a time range.

        Raises InvalidSchemaError / InvalidTimeFormatError for bad input and
        UpstreamApiError / UpstreamConnectionError / NotConfiguredError for
        vendor failures. The response schema equals the parsed request schema
        and holds at most ``request.limit`` records.
        """

    @abstractmethod
    async def subscribe_live(
        self,
        symbols: list[str],
        schema: str,
        stype_in: str = "parent",
    ) -> LiveStream:
        """Open a live subscription.

        Schema validation happens here and raises synchronously. The returned
        stream yields a ConnectedMessage first, then data messages until the
        session ends. An ErrorMessage is always the last element when present.
        Streams are single-use; call again to resubscribe.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Static identifier used in logs."""


def parse_rfc3339(value: str, field_name: str) -> int:
    """Parse an RFC3339 timestamp into nanoseconds since the Unix epoch.

    Fractions keep nanosecond precision; digits past the ninth are dropped.
    """
    match = _RFC3339.fullmatch(value.strip())
    if match is None:
        raise InvalidTimeFormatError(f"{field_name}: '{value}' is not an RFC3339 timestamp")

    day, clock, fraction, offset = match.groups()
    if offset in "Zz":
        offset = "+00:00"
    try:
        moment = datetime.fromisoformat(f"{day}T{clock}{offset}")
    except ValueError as e:
        raise InvalidTimeFormatError(f"{field_name}: '{value}': {e}") from None

    return to_unix_ns(moment) + int((fraction or "0")[:9].ljust(9, "0"))


def to_unix_ns(moment: datetime) -> int:
    """Nanoseconds since the Unix epoch, without float rounding."""
    return (moment - _EPOCH) // timedelta(microseconds=1) * 1000
