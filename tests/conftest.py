"""Shared fixtures and in-memory collaborators"""

import pytest

from tempest_core.decision_system.integration import Calculators
from tempest_core.decision_system.learning.tracker import LearningStateTracker
from tempest_core.decision_system.parameters import load_parameters
from tempest_core.settings import Settings
from tempest_core.types import (
    BehaviorProfile,
    CongestionLevel,
    GasTier,
    MempoolStats,
    NetworkConditions,
    PricePoint,
    Sentiment,
)

GWEI = 10**9
ETH = 10**18

NORMAL_ADDRESS = "0x742d35cc6634c0532925a3b844bc454e4438f44e"


class FakeGasOracle:
    def __init__(self, tier: GasTier, error: Exception | None = None):
        self.tier = tier
        self.error = error
        self.calls = 0

    def get_gas_tier(self) -> GasTier:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.tier


class FakeMempool:
    def __init__(self, pending_count: int = 1_000):
        self.stats = MempoolStats(pending_count=pending_count, avg_gas_price_wei=15 * GWEI)

    def get_mempool_stats(self) -> MempoolStats:
        return self.stats


class FakeProfiles:
    def __init__(self, profile: BehaviorProfile | None = None, limit_wei: int = 5 * ETH):
        self.profile = profile or BehaviorProfile()
        self.limit_wei = limit_wei

    def get_behavior_profile(self) -> BehaviorProfile:
        return self.profile

    def get_per_transaction_limit_wei(self) -> int:
        return self.limit_wei


class FakeLock:
    """Returns the queued lock states in order, then the last one forever."""

    def __init__(self, *states: bool):
        self.states = list(states) or [False]

    def is_locked(self) -> bool:
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]


class FakeSubmitter:
    def __init__(self, result: bool = True, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []

    def submit(self, request, gas_price_wei):
        self.calls.append((request, gas_price_wei))
        if self.error is not None:
            raise self.error
        return self.result


class FakePriceSource:
    def __init__(self, history, error: Exception | None = None):
        self.history = history
        self.error = error

    def get_history(self, asset):
        if self.error is not None:
            raise self.error
        return self.history


class FakeSentiment:
    def __init__(self, sentiment: Sentiment = Sentiment.POSITIVE):
        self.sentiment = sentiment

    def get_sentiment(self, asset):
        return self.sentiment


class FakeOrderSink:
    def __init__(self, result: bool = True):
        self.result = result
        self.orders = []

    def place(self, order):
        self.orders.append(order)
        return self.result


def zigzag_uptrend(n: int = 60) -> list[PricePoint]:
    """Uptrend with alternating ±3 noise; RSI stays mid-range."""
    return [
        PricePoint(timestamp=1_700_000_000 + 3600 * i, price=100 + 0.5 * i + (3 if i % 2 == 0 else -3))
        for i in range(n)
    ]


@pytest.fixture
def parameters():
    return load_parameters()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def calculators(test_settings, parameters) -> Calculators:
    return Calculators.from_settings(test_settings, parameters=parameters)


@pytest.fixture
def gas_tier() -> GasTier:
    return GasTier(slow=10 * GWEI, standard=25 * GWEI, fast=60 * GWEI, instant=80 * GWEI, confidence=0.9)


@pytest.fixture
def low_conditions() -> NetworkConditions:
    return NetworkConditions(
        gas_price_gwei=15.0,
        congestion=CongestionLevel.LOW,
        mempool_size=1_000,
        avg_wait_time_seconds=36.0,
        confidence=0.9,
    )


@pytest.fixture
def tracker() -> LearningStateTracker:
    return LearningStateTracker()


@pytest.fixture
def low_gas_tier() -> GasTier:
    return GasTier(slow=10 * GWEI, standard=15 * GWEI, fast=30 * GWEI, instant=40 * GWEI, confidence=0.9)
