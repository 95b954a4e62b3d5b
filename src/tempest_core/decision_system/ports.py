"""Port definitions for external collaborators.

Responsibilities:
  - Define interface contracts for data sources, the wallet lock, submission
    and order placement.
Must not:
  - Implement logic; interfaces only.

Every read returns a fresh, already-resolved snapshot. Sources that fail raise
ExternalDataUnavailable; they never substitute synthetic data.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from tempest_core.types import (
    BehaviorProfile,
    GasTier,
    MempoolStats,
    PricePoint,
    Sentiment,
    TradeOrder,
    TransferRequest,
)


class GasOracle(Protocol):
    def get_gas_tier(self) -> GasTier:
        ...


class MempoolSource(Protocol):
    def get_mempool_stats(self) -> MempoolStats:
        ...


class PriceSource(Protocol):
    def get_history(self, asset: str) -> Sequence[PricePoint]:
        ...


class SentimentSource(Protocol):
    def get_sentiment(self, asset: str) -> Sentiment:
        ...


class ProfileStore(Protocol):
    def get_behavior_profile(self) -> BehaviorProfile:
        ...

    def get_per_transaction_limit_wei(self) -> int:
        ...


class WalletLock(Protocol):
    def is_locked(self) -> bool:
        ...


class TransactionSubmitter(Protocol):
    def submit(self, request: TransferRequest, gas_price_wei: int) -> bool:
        ...


class OrderSink(Protocol):
    def place(self, order: TradeOrder) -> bool:
        ...
