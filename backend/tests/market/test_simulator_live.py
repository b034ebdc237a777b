"""Integration tests for SimulatorService live streams."""

import asyncio

import pytest

from marketview.market.errors import InvalidSchemaError
from marketview.market.models import ConnectedMessage, OhlcvMessage, TradeMessage
from marketview.market.sim_params import BASE_PRICE, PRICE_FLOOR_OFFSET
from marketview.market.simulator import SimulatorService


async def _take(stream, n):
    messages = []
    async for message in stream:
        messages.append(message)
        if len(messages) == n:
            break
    await stream.aclose()
    return messages


@pytest.mark.asyncio
class TestSimulatorLive:
    """Live subscriptions against the simulator."""

    async def test_connected_then_trades(self, simulator):
        """Test that a stream opens with connected, then trades."""
        stream = await simulator.subscribe_live(["ES.FUT"], "trades")
        messages = await _take(stream, 3)

        assert len(messages) == 3
        assert messages[0] == ConnectedMessage(symbols=["ES.FUT"], schema="trades")
        assert all(isinstance(m, TradeMessage) for m in messages[1:])
        assert all(m.trade.symbol == "ES.FUT" for m in messages[1:])

    async def test_round_robin_symbols(self, simulator):
        """Test that live messages cycle through the symbols."""
        stream = await simulator.subscribe_live(["ES.FUT", "NQ.FUT"], "trades")
        messages = await _take(stream, 5)

        assert messages[0].symbols == ["ES.FUT", "NQ.FUT"]
        assert [m.trade.symbol for m in messages[1:]] == ["ES.FUT", "NQ.FUT", "ES.FUT", "NQ.FUT"]

    async def test_trade_values(self, simulator):
        """Test live trade prices and sizes against their bounds."""
        stream = await simulator.subscribe_live(["ES.FUT"], "trades")
        messages = await _take(stream, 20)

        for message in messages[1:]:
            trade = message.trade
            assert trade.price_i64 >= BASE_PRICE - PRICE_FLOOR_OFFSET
            assert abs(trade.price_i64 - BASE_PRICE) <= 19 * 250_000_000
            assert 1 <= trade.size_u32 <= 25
            assert trade.ts_event_unix_ns > 0

    async def test_timestamps_non_decreasing(self, simulator):
        """Test that live timestamps never go backwards."""
        stream = await simulator.subscribe_live(["ES.FUT"], "trades")
        messages = await _take(stream, 6)
        timestamps = [m.trade.ts_event_unix_ns for m in messages[1:]]
        assert timestamps == sorted(timestamps)

    async def test_ohlcv_subscription_emits_bars(self, simulator):
        """Test that an OHLCV subscription emits aligned bars."""
        stream = await simulator.subscribe_live(["ES.FUT"], "ohlcv-1s")
        messages = await _take(stream, 4)

        assert messages[0].schema == "ohlcv-1s"
        bars = [m.bar for m in messages[1:]]
        assert all(isinstance(m, OhlcvMessage) for m in messages[1:])
        assert bars[0].open_i64 == BASE_PRICE
        for previous, bar in zip(bars, bars[1:]):
            assert bar.open_i64 == previous.close_i64
        for bar in bars:
            assert bar.low_i64 <= bar.open_i64 <= bar.high_i64
            assert bar.low_i64 <= bar.close_i64 <= bar.high_i64
            assert bar.ts_event_unix_ns % 1_000_000_000 == 0

    async def test_invalid_schema_raises_synchronously(self, simulator):
        """Test that an unknown schema raises before streaming."""
        with pytest.raises(InvalidSchemaError):
            await simulator.subscribe_live(["ES.FUT"], "ohlcv-1d")

    async def test_empty_symbols_ends_after_connected(self, simulator):
        """Test that an empty symbol list ends after connected."""
        stream = await simulator.subscribe_live([], "trades")
        messages = [m async for m in stream]
        assert messages == [ConnectedMessage(symbols=[], schema="trades")]

    async def test_concurrent_streams_are_independent(self, simulator):
        """Test that concurrent streams do not share state."""
        first = await simulator.subscribe_live(["ES.FUT"], "trades")
        second = await simulator.subscribe_live(["CL.FUT"], "trades")

        a, b = await asyncio.gather(_take(first, 4), _take(second, 4))

        assert {m.trade.symbol for m in a[1:]} == {"ES.FUT"}
        assert {m.trade.symbol for m in b[1:]} == {"CL.FUT"}

    async def test_close_stops_stream(self, simulator):
        """Test that closing the stream stops generation."""
        stream = await simulator.subscribe_live(["ES.FUT"], "trades")
        await stream.__anext__()
        await stream.aclose()

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    async def test_tick_interval_is_respected(self):
        """Test that ticks wait at least the minimum interval."""
        service = SimulatorService(tick_interval=(0.05, 0.05))
        stream = await service.subscribe_live(["ES.FUT"], "trades")
        loop = asyncio.get_running_loop()

        started = loop.time()
        await _take(stream, 3)

        assert loop.time() - started >= 0.09
