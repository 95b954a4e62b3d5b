"""
Strategy book and execution guard.

The book owns Strategy records and is the only place they are mutated. The
scheduler decides, per strategy id, whether a tick may start a run: a strategy
that is already running, or that finished less than one cooldown ago, is
skipped rather than re-entered.
"""
import threading
import time
import uuid
from typing import Any, Dict, Literal

import structlog

from tempest_core.errors import StrategyNotFound
from tempest_core.types import (
    Strategy,
    StrategyRiskLevel,
    StrategyType,
)

logger = structlog.get_logger(__name__)

DCA_INTERVALS = {
    "daily": 24 * 60 * 60,
    "weekly": 7 * 24 * 60 * 60,
    "monthly": 30 * 24 * 60 * 60,
}

AI_CUSTOM_ALLOCATION = {
    StrategyRiskLevel.LOW: 25.0,
    StrategyRiskLevel.MEDIUM: 50.0,
    StrategyRiskLevel.HIGH: 75.0,
}


class StrategyScheduler:
    """Idempotency guard keyed by strategy id with a cooldown window"""

    def __init__(self, cooldown_seconds: float = 120.0):
        self.cooldown_seconds = cooldown_seconds
        self._lock = threading.Lock()
        self._running: set[str] = set()

    def try_begin(self, strategy: Strategy, now: float) -> bool:
        """
        Claim a strategy for one run.

        Returns:
            False when the strategy is mid-execution or still cooling down
        """
        with self._lock:
            if strategy.id in self._running:
                logger.debug("strategy_skipped", strategy_id=strategy.id, reason="in_flight")
                return False
            if (
                strategy.last_executed_at is not None
                and now - strategy.last_executed_at < self.cooldown_seconds
            ):
                logger.debug("strategy_skipped", strategy_id=strategy.id, reason="cooldown")
                return False
            self._running.add(strategy.id)
            return True

    def finish(self, strategy: Strategy, now: float, succeeded: bool = True) -> None:
        """
        Release the claim.

        Only a successful run stamps last_executed_at, so a failed run is
        eligible again on the next tick.
        """
        with self._lock:
            if succeeded:
                strategy.last_executed_at = now
            self._running.discard(strategy.id)

    def is_running(self, strategy_id: str) -> bool:
        with self._lock:
            return strategy_id in self._running


class StrategyBook:
    """In-memory strategy registry; persistence belongs to the caller."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._strategies: Dict[str, Strategy] = {}

    def _add(
        self,
        prefix: str,
        name: str,
        description: str,
        strategy_type: StrategyType,
        risk_level: StrategyRiskLevel,
        max_allocation_percent: float,
        parameters: Dict[str, Any],
    ) -> Strategy:
        strategy = Strategy(
            id=f"{prefix}_{uuid.uuid4().hex[:12]}",
            name=name,
            description=description,
            type=strategy_type,
            risk_level=risk_level,
            max_allocation_percent=max_allocation_percent,
            created_at=self._clock(),
            parameters=parameters,
        )
        with self._lock:
            self._strategies[strategy.id] = strategy
        logger.info("strategy_created", strategy_id=strategy.id, type=strategy_type.value)
        return strategy

    def create_gas_optimization_strategy(
        self, name: str, target_savings: float, max_delay_minutes: int
    ) -> Strategy:
        return self._add(
            "gas_opt",
            name,
            f"Optimize gas prices to save {target_savings}% with max {max_delay_minutes}min delay",
            StrategyType.GAS_OPTIMIZATION,
            StrategyRiskLevel.LOW,
            100.0,
            {
                "target_savings": target_savings,
                "max_delay": max_delay_minutes,
                "min_confidence": 0.6,
            },
        )

    def create_network_timing_strategy(self, name: str, preferred_hours: list[int]) -> Strategy:
        return self._add(
            "net_timing",
            name,
            f"Execute transactions during hours {preferred_hours}",
            StrategyType.NETWORK_TIMING,
            StrategyRiskLevel.LOW,
            100.0,
            {"preferred_hours": list(preferred_hours)},
        )

    def create_dca_strategy(
        self,
        name: str,
        asset: str,
        amount: float,
        interval: Literal["daily", "weekly", "monthly"],
    ) -> Strategy:
        if interval not in DCA_INTERVALS:
            raise ValueError(f"unknown DCA interval: {interval}")
        return self._add(
            "dca",
            name,
            f"DCA {amount} {asset.upper()} {interval}",
            StrategyType.DCA,
            StrategyRiskLevel.LOW,
            25.0,
            {
                "asset": asset,
                "amount": amount,
                "interval": interval,
                "next_execution": self._clock() + DCA_INTERVALS[interval],
            },
        )

    def create_momentum_strategy(
        self, name: str, asset: str, lookback_days: int, threshold: float
    ) -> Strategy:
        return self._add(
            "momentum",
            name,
            f"Momentum trading for {asset.upper()} with {lookback_days}d lookback",
            StrategyType.MOMENTUM,
            StrategyRiskLevel.MEDIUM,
            50.0,
            {
                "asset": asset,
                "lookback_days": lookback_days,
                "threshold": threshold,
                "last_signal": None,
            },
        )

    def create_ai_custom_strategy(
        self,
        name: str,
        prompt: str,
        asset: str = "eth",
        risk_level: StrategyRiskLevel = StrategyRiskLevel.MEDIUM,
    ) -> Strategy:
        return self._add(
            "ai_custom",
            name,
            f"Custom strategy: {prompt[:50]}",
            StrategyType.AI_CUSTOM,
            risk_level,
            AI_CUSTOM_ALLOCATION[risk_level],
            {
                "prompt": prompt,
                "asset": asset,
                "confidence_threshold": 0.7,
            },
        )

    def get(self, strategy_id: str) -> Strategy:
        with self._lock:
            try:
                return self._strategies[strategy_id]
            except KeyError:
                raise StrategyNotFound(strategy_id) from None

    def strategies(self) -> list[Strategy]:
        with self._lock:
            return list(self._strategies.values())

    def enabled(self) -> list[Strategy]:
        return [s for s in self.strategies() if s.enabled]

    def enable(self, strategy_id: str) -> None:
        self.get(strategy_id).enabled = True
        logger.info("strategy_enabled", strategy_id=strategy_id)

    def disable(self, strategy_id: str) -> None:
        self.get(strategy_id).enabled = False
        logger.info("strategy_disabled", strategy_id=strategy_id)

    def delete(self, strategy_id: str) -> None:
        with self._lock:
            if self._strategies.pop(strategy_id, None) is None:
                raise StrategyNotFound(strategy_id)
        logger.info("strategy_deleted", strategy_id=strategy_id)

    def performance_metrics(self) -> Dict[str, Any]:
        """Aggregate performance across all strategies."""
        strategies = self.strategies()
        count = len(strategies)
        if count == 0:
            return {
                "total_strategies": 0,
                "active_strategies": 0,
                "total_optimizations": 0,
                "total_gas_saved_wei": 0,
                "total_return": 0.0,
                "avg_confirmation_time": 0,
                "success_rate": 0.0,
            }

        perf = [s.performance for s in strategies]
        rates = [
            p.successful_trades / p.total_trades if p.total_trades > 0 else 0.0
            for p in perf
        ]
        return {
            "total_strategies": count,
            "active_strategies": sum(1 for s in strategies if s.enabled),
            "total_optimizations": sum(p.total_trades for p in perf),
            "total_gas_saved_wei": sum(p.total_gas_saved_wei for p in perf),
            "total_return": sum(p.total_return for p in perf),
            "avg_confirmation_time": round(sum(p.avg_confirmation_time for p in perf) / count),
            "success_rate": sum(rates) / count,
        }
