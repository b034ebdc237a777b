"""Tuning constants for the synthetic market data generator.

All prices are fixed-point integers scaled by 1e9 (see models.PRICE_SCALE).
"""

# Starting price for every symbol: 5000.00, roughly where ES futures trade
BASE_PRICE: int = 5_000_000_000_000

# Random-walk floor sits this far below the base price
PRICE_FLOOR_OFFSET: int = 50_000_000_000  # 50.00

# Max absolute step per tick
HISTORICAL_TRADE_STEP: int = 500_000_000  # 0.50
LIVE_TRADE_STEP: int = 250_000_000  # 0.25

# Historical trade queries never produce more than this many ticks
MAX_HISTORICAL_TRADES: int = 1000

# Inclusive trade size ranges (contracts)
HISTORICAL_TRADE_SIZE: tuple[int, int] = (1, 50)
LIVE_TRADE_SIZE: tuple[int, int] = (1, 25)

# Intrabar excursions for synthetic bars. High and low deltas are drawn
# independently, close lands within +/- CLOSE_DELTA of open.
BAR_HIGH_DELTA: int = 2_000_000_000  # 2.00
BAR_LOW_DELTA: int = 2_000_000_000  # 2.00
BAR_CLOSE_DELTA: int = 1_000_000_000  # 1.00

# Inclusive bar volume range
BAR_VOLUME: tuple[int, int] = (100, 10_000)

# Seconds between live ticks, drawn uniformly per tick
LIVE_TICK_INTERVAL: tuple[float, float] = (0.1, 0.5)
