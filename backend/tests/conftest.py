"""Pytest configuration and fixtures."""

import pytest

from marketview.market.models import HistoricalRequest
from marketview.market.simulator import SimulatorService


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def simulator():
    """Simulator with millisecond live ticks so streaming tests stay fast."""
    return SimulatorService(tick_interval=(0.001, 0.005))


@pytest.fixture
def make_request():
    """Build a HistoricalRequest with one-hour ES defaults."""

    def _make(**overrides):
        fields = {
            "symbols": ["ES.FUT"],
            "schema": "trades",
            "start_rfc3339": "2024-01-01T00:00:00Z",
            "end_rfc3339": "2024-01-01T01:00:00Z",
            "limit": 100,
        }
        fields.update(overrides)
        return HistoricalRequest(**fields)

    return _make
