"""
Technical indicator calculations - PURE MATH, NO I/O.

All functions are deterministic and unit-testable. Indicators that need more
history than is available return documented neutral values instead of raising:

    SMA / Bollinger bands   0
    RSI                     50
    volatility              0
"""
import math
from typing import Dict, Iterable, Sequence

import numpy as np
import pandas as pd

from tempest_core.decision_system.parameters import load_parameters
from tempest_core.types import PricePoint, TechnicalIndicatorSet

NEUTRAL_RSI = 50.0


def _finite(value: float, default: float = 0.0) -> float:
    value = float(value)
    return value if math.isfinite(value) else default


def to_series(prices: Iterable[PricePoint | tuple[int, float]]) -> pd.Series:
    """
    Price history as a float Series indexed by timestamp, oldest first.

    Accepts PricePoint records or (timestamp, price) pairs.
    """
    timestamps = []
    values = []
    for point in prices:
        if isinstance(point, PricePoint):
            ts, price = point.timestamp, point.price
        else:
            ts, price = point
        timestamps.append(int(ts))
        values.append(float(price))
    return pd.Series(values, index=timestamps, dtype="float64", name="price")


def sma(prices: pd.Series, period: int) -> float:
    """Arithmetic mean of the last `period` prices; 0 when history is shorter."""
    if period <= 0 or len(prices) < period:
        return 0.0
    return _finite(prices.iloc[-period:].mean())


def ema(prices: pd.Series, period: int) -> float:
    """
    Exponential moving average over the full series.

    Formula: ema_i = price_i × k + ema_{i-1} × (1 - k), k = 2 / (period + 1),
    seeded with the first price. ewm(adjust=False) is exactly this recurrence.
    """
    if len(prices) == 0:
        return 0.0
    return _finite(prices.ewm(span=period, adjust=False).mean().iloc[-1])


def rsi(prices: pd.Series, period: int = 14) -> float:
    """
    Relative Strength Index over the most recent `period` deltas.

    Formula: RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    Returns:
        50 with fewer than period + 1 points, 100 when there are no losses
    """
    if period <= 0 or len(prices) < period + 1:
        return NEUTRAL_RSI

    deltas = prices.diff().iloc[-period:].to_numpy()
    avg_gain = np.where(deltas > 0, deltas, 0.0).mean()
    avg_loss = np.where(deltas < 0, -deltas, 0.0).mean()

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    value = 100.0 - 100.0 / (1.0 + rs)
    return min(100.0, max(0.0, _finite(value, NEUTRAL_RSI)))


def macd(prices: pd.Series, fast: int = 12, slow: int = 26) -> float:
    """MACD line: EMA(fast) - EMA(slow)."""
    return _finite(ema(prices, fast) - ema(prices, slow))


def bollinger_bands(prices: pd.Series, period: int = 20, width: float = 2.0) -> tuple[float, float]:
    """
    Bollinger bands around SMA(period).

    Formula: SMA ± width × σ, σ the population std of the last `period` prices

    Returns:
        (upper, lower); (0, 0) when history is shorter than the period
    """
    middle = sma(prices, period)
    if period <= 0 or len(prices) < period:
        return 0.0, 0.0

    sigma = _finite(prices.iloc[-period:].std(ddof=0))
    return _finite(middle + width * sigma), _finite(middle - width * sigma)


def volatility(prices: pd.Series) -> float:
    """
    Population standard deviation of simple period-over-period returns.

    Returns:
        0 with fewer than 2 points
    """
    if len(prices) < 2:
        return 0.0

    returns = prices.pct_change().iloc[1:].replace([np.inf, -np.inf], np.nan).fillna(0.0)
    return max(0.0, _finite(returns.std(ddof=0)))


def price_momentum(prices: pd.Series) -> float:
    """
    Relative price change across the series: last / first - 1.

    Returns:
        0 with fewer than 2 points or a zero first price
    """
    if len(prices) < 2 or prices.iloc[0] == 0:
        return 0.0
    return _finite(prices.iloc[-1] / prices.iloc[0] - 1.0)


class TechnicalIndicatorEngine:
    """Compute the full indicator set from an ordered price history"""

    def __init__(self, config: Dict | None = None):
        if config is None:
            config = load_parameters()["indicators"]
        self.config = config

    def compute(self, history: Sequence[PricePoint | tuple[int, float]]) -> TechnicalIndicatorSet:
        """
        Compute all indicators.

        Args:
            history: (timestamp, price) points, oldest first, gaps allowed

        Returns:
            TechnicalIndicatorSet with only finite values

        Raises:
            ValueError: empty history
        """
        prices = to_series(history)
        if prices.empty:
            raise ValueError("price history must contain at least one point")

        periods = set(self.config["sma_periods"])
        upper, lower = bollinger_bands(
            prices,
            self.config["bollinger_period"],
            self.config["bollinger_width"],
        )

        return TechnicalIndicatorSet(
            sma={p: sma(prices, p) for p in sorted(periods)},
            ema={p: ema(prices, p) for p in sorted(set(self.config["ema_periods"]))},
            rsi=rsi(prices, self.config["rsi_period"]),
            macd=macd(prices, self.config["macd_fast"], self.config["macd_slow"]),
            bollinger_upper=upper,
            bollinger_lower=lower,
            volatility=volatility(prices),
            current_price=_finite(prices.iloc[-1]),
        )