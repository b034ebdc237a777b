"""Synthetic market data generator for running without a vendor API key."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time

import numpy as np

from .interface import LiveStream, MarketDataService, parse_rfc3339
from .models import (
    ConnectedMessage,
    HistoricalRequest,
    HistoricalResponse,
    OhlcvMessage,
    OhlcvRecord,
    Schema,
    TradeMessage,
    TradeRecord,
)
from .sim_params import (
    BAR_CLOSE_DELTA,
    BAR_HIGH_DELTA,
    BAR_LOW_DELTA,
    BAR_VOLUME,
    BASE_PRICE,
    HISTORICAL_TRADE_SIZE,
    HISTORICAL_TRADE_STEP,
    LIVE_TICK_INTERVAL,
    LIVE_TRADE_SIZE,
    LIVE_TRADE_STEP,
    MAX_HISTORICAL_TRADES,
    PRICE_FLOOR_OFFSET,
)

logger = logging.getLogger(__name__)

NS_PER_SECOND = 1_000_000_000


class RandomWalk:
    """Symmetric random walk over fixed-point prices with a hard floor.

    Math:
        P(t+1) = max(P(t) + U, floor),   U ~ Uniform{-max_step, ..., +max_step}

    The floor keeps a long run of down-steps from drifting the price towards
    zero or below.
    """

    def __init__(
        self,
        start: int,
        floor: int,
        max_step: int,
        rng: np.random.Generator,
    ) -> None:
        self._price = start
        self._floor = floor
        self._max_step = max_step
        self._rng = rng

    @property
    def price(self) -> int:
        return self._price

    def step(self) -> int:
        """Advance one tick and return the new price."""
        delta = int(self._rng.integers(-self._max_step, self._max_step, endpoint=True))
        self._price = max(self._price + delta, self._floor)
        return self._price

    def path(self, n: int) -> list[int]:
        """Advance ``n`` ticks and return every visited price."""
        deltas = self._rng.integers(-self._max_step, self._max_step, size=n, endpoint=True)
        prices = []
        for delta in deltas:
            self._price = max(self._price + int(delta), self._floor)
            prices.append(self._price)
        return prices


def synth_bar(
    symbol: str,
    ts_ns: int,
    open_price: int,
    high_delta: int,
    low_delta: int,
    close_delta: int,
    volume: int,
) -> OhlcvRecord:
    """Build one bar around ``open_price``. Close is clamped into [low, high]."""
    high = open_price + high_delta
    low = open_price - low_delta
    close = min(max(open_price + close_delta, low), high)
    return OhlcvRecord(
        ts_event_unix_ns=ts_ns,
        symbol=symbol,
        open_i64=open_price,
        high_i64=high,
        low_i64=low,
        close_i64=close,
        volume_u64=volume,
    )


class SimulatorService(MarketDataService):
    """MarketDataService that fabricates trades and bars locally.

    Historical queries are generated on demand. Live subscriptions run a
    random walk per stream, ticking every ``tick_interval`` seconds (drawn
    uniformly from the range) until the consumer closes the stream.

    Every call owns a fresh numpy Generator, so concurrent streams never share
    random state. Pass ``seed`` to make every call reproducible.
    """

    def __init__(
        self,
        base_price: int = BASE_PRICE,
        tick_interval: tuple[float, float] = LIVE_TICK_INTERVAL,
        seed: int | None = None,
    ) -> None:
        self._base_price = base_price
        self._floor = base_price - PRICE_FLOOR_OFFSET
        self._tick_interval = tick_interval
        self._seed = seed

    @property
    def name(self) -> str:
        return "SimulatorService"

    @property
    def base_price(self) -> int:
        return self._base_price

    async def get_historical(self, request: HistoricalRequest) -> HistoricalResponse:
        schema = Schema.parse(request.schema)
        start_ns = parse_rfc3339(request.start_rfc3339, "start_rfc3339")
        end_ns = parse_rfc3339(request.end_rfc3339, "end_rfc3339")
        limit = max(request.limit, 0)
        if start_ns >= end_ns or not request.symbols:
            logger.info("Empty historical range or symbol list, returning no %s data", schema)
            return HistoricalResponse(schema=schema, data=[])

        rng = np.random.default_rng(self._seed)
        if schema is Schema.TRADES:
            data = self.generate_trades(request.symbols, start_ns, end_ns, limit, rng)
        else:
            data = self.generate_bars(
                request.symbols, start_ns, end_ns, schema.bar_seconds, limit, rng
            )
        logger.debug("Generated %d synthetic %s records", len(data), schema)
        return HistoricalResponse(schema=schema, data=data)

    def generate_trades(
        self,
        symbols: list[str],
        start_ns: int,
        end_ns: int,
        limit: int,
        rng: np.random.Generator,
    ) -> list[TradeRecord]:
        """Evenly spaced trades across [start, end], symbols round-robin."""
        n = min(limit, MAX_HISTORICAL_TRADES)
        if n == 0:
            return []

        walk = RandomWalk(self._base_price, self._floor, HISTORICAL_TRADE_STEP, rng)
        prices = walk.path(n)
        sizes = rng.integers(*HISTORICAL_TRADE_SIZE, size=n, endpoint=True)
        duration = end_ns - start_ns

        trades = []
        for i, (price, size) in enumerate(zip(prices, sizes)):
            offset = duration * i // (n - 1) if n > 1 else 0
            trades.append(
                TradeRecord(
                    ts_event_unix_ns=start_ns + offset,
                    symbol=symbols[i % len(symbols)],
                    price_i64=price,
                    size_u32=int(size),
                )
            )
        return trades

    def generate_bars(
        self,
        symbols: list[str],
        start_ns: int,
        end_ns: int,
        bar_seconds: int,
        limit: int,
        rng: np.random.Generator,
    ) -> list[OhlcvRecord]:
        """One bar per symbol per whole bar slot in the range, capped at ``limit`` slots.

        The cap applies per symbol, so N symbols yield up to N * limit bars.

        Each symbol keeps its own path: a bar opens at that symbol's previous
        close, the first bar at the base price.
        """
        bar_ns = bar_seconds * NS_PER_SECOND
        count = min((end_ns - start_ns) // bar_ns, limit)
        if count <= 0:
            return []

        # Draw every excursion up front, one row per symbol
        shape = (len(symbols), count)
        highs = rng.integers(0, BAR_HIGH_DELTA, size=shape, endpoint=True)
        lows = rng.integers(0, BAR_LOW_DELTA, size=shape, endpoint=True)
        closes = rng.integers(-BAR_CLOSE_DELTA, BAR_CLOSE_DELTA, size=shape, endpoint=True)
        volumes = rng.integers(*BAR_VOLUME, size=shape, endpoint=True)

        last_close = [self._base_price] * len(symbols)
        bars = []
        for i in range(count):
            ts = start_ns + i * bar_ns
            for s, symbol in enumerate(symbols):
                bar = synth_bar(
                    symbol,
                    ts,
                    last_close[s],
                    int(highs[s, i]),
                    int(lows[s, i]),
                    int(closes[s, i]),
                    int(volumes[s, i]),
                )
                last_close[s] = bar.close_i64
                bars.append(bar)
        return bars

    async def subscribe_live(
        self,
        symbols: list[str],
        schema: str,
        stype_in: str = "parent",
    ) -> LiveStream:
        parsed = Schema.parse(schema)
        logger.info("Simulator live subscription: %s (%s)", symbols, parsed)
        return self._live_stream(list(symbols), schema, parsed)

    async def _live_stream(
        self,
        symbols: list[str],
        raw_schema: str,
        schema: Schema,
    ) -> LiveStream:
        """Core loop: sleep, step the walk, emit one message for the next symbol."""
        rng = np.random.default_rng(self._seed)
        yield ConnectedMessage(symbols=list(symbols), schema=raw_schema)

        walk = RandomWalk(self._base_price, self._floor, LIVE_TRADE_STEP, rng)
        last_close = dict.fromkeys(symbols, self._base_price)
        low_interval, high_interval = self._tick_interval

        for symbol in itertools.cycle(symbols):
            await asyncio.sleep(rng.uniform(low_interval, high_interval))
            if schema is Schema.TRADES:
                yield TradeMessage(
                    TradeRecord(
                        ts_event_unix_ns=time.time_ns(),
                        symbol=symbol,
                        price_i64=walk.step(),
                        size_u32=int(rng.integers(*LIVE_TRADE_SIZE, endpoint=True)),
                    )
                )
            else:
                bar_ns = schema.bar_seconds * NS_PER_SECOND
                now = time.time_ns()
                bar = synth_bar(
                    symbol,
                    now - now % bar_ns,
                    last_close[symbol],
                    int(rng.integers(0, BAR_HIGH_DELTA, endpoint=True)),
                    int(rng.integers(0, BAR_LOW_DELTA, endpoint=True)),
                    int(rng.integers(-BAR_CLOSE_DELTA, BAR_CLOSE_DELTA, endpoint=True)),
                    int(rng.integers(*BAR_VOLUME, endpoint=True)),
                )
                last_close[symbol] = bar.close_i64
                yield OhlcvMessage(bar)
