"""
Integration layer between the wallet's collaborators and the calculators.

Collaborators (oracles, lock, submitter, order sink) do ALL I/O.
Calculators do ALL math. This module only sequences them:

    transfer:  lock check -> risk -> gas -> lock re-check -> submit -> feedback
    strategy:  guard -> prices -> indicators -> decision -> order -> feedback
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, Sequence

import structlog

from tempest_core.decision_system import formatting
from tempest_core.decision_system.engine.strategy_engine import StrategyDecisionEngine
from tempest_core.decision_system.gas.optimizer import GasPriceOptimizer
from tempest_core.decision_system.learning.tracker import LearningStateTracker
from tempest_core.decision_system.network.classifier import NetworkConditionClassifier
from tempest_core.decision_system.parameters import load_parameters
from tempest_core.decision_system.ports import (
    GasOracle,
    MempoolSource,
    OrderSink,
    PriceSource,
    ProfileStore,
    SentimentSource,
    TransactionSubmitter,
    WalletLock,
)
from tempest_core.decision_system.risk.assessment import RiskAssessmentEngine
from tempest_core.decision_system.risk.reputation import ReputationSource, StaticReputationSource
from tempest_core.decision_system.signals.indicators import (
    TechnicalIndicatorEngine,
    price_momentum,
    to_series,
)
from tempest_core.decision_system.strategies.scheduler import (
    DCA_INTERVALS,
    StrategyBook,
    StrategyScheduler,
)
from tempest_core.errors import (
    TransferRejected,
    WalletLocked,
    WalletLockedAtSubmission,
)
from tempest_core.settings import Settings
from tempest_core.types import (
    CongestionLevel,
    GasDecision,
    GasTier,
    NetworkConditions,
    PricePoint,
    RiskAssessment,
    RiskLevel,
    Strategy,
    StrategyType,
    TradeAction,
    TradeOrder,
    TradingDecision,
    TransferRequest,
    Urgency,
    clamp01,
)

logger = structlog.get_logger(__name__)

GAS_STRATEGY_MAX_GWEI = 30
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class TransferOutcome:
    request: TransferRequest
    assessment: RiskAssessment
    gas: GasDecision
    submitted: bool


@dataclass(frozen=True)
class Calculators:
    """One set of configured calculators shared by both pipelines."""
    classifier: NetworkConditionClassifier
    gas: GasPriceOptimizer
    risk: RiskAssessmentEngine
    indicators: TechnicalIndicatorEngine
    strategy: StrategyDecisionEngine

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        reputation: ReputationSource | None = None,
        parameters: Dict[str, Any] | None = None,
    ) -> "Calculators":
        if parameters is None:
            parameters = load_parameters(config.parameters_path)
        classifier = NetworkConditionClassifier(parameters["network"])
        return cls(
            classifier=classifier,
            gas=GasPriceOptimizer(config.personality, parameters, classifier),
            risk=RiskAssessmentEngine(
                large_transfer_threshold_wei=config.large_transfer_threshold_wei,
                unusual_transfer_threshold_wei=config.unusual_transfer_threshold_wei,
                network_risk_threshold=config.network_risk_threshold,
                reputation=reputation or StaticReputationSource(config.denied_addresses),
                failure_mode=config.reputation_failure_mode,
                whitelist=config.whitelisted_addresses,
                config=parameters["risk"],
            ),
            indicators=TechnicalIndicatorEngine(parameters["indicators"]),
            strategy=StrategyDecisionEngine(parameters["strategy"]),
        )


def read_network_conditions(
    calculators: Calculators, gas_oracle: GasOracle, mempool: MempoolSource
) -> tuple[GasTier, NetworkConditions]:
    """One consistent (gas tier, conditions) pair for a single decision."""
    gas_tier = gas_oracle.get_gas_tier()
    conditions = calculators.classifier.classify_snapshot(gas_tier, mempool.get_mempool_stats())
    return gas_tier, conditions


def network_status(conditions: NetworkConditions) -> Dict[str, Any]:
    """Display summary of a network snapshot."""
    return {
        "gas_price": conditions.gas_price_gwei,
        "congestion": conditions.congestion.value,
        "recommendation": formatting.congestion_recommendation(conditions.congestion),
        "confidence": conditions.confidence,
    }


class TransferPipeline:
    """
    Risk-check, price and submit one transfer.

    The wallet lock is checked when the request starts and again immediately
    before submission; a lock seen at the second check aborts even though the
    whole pipeline already ran.
    """

    def __init__(
        self,
        calculators: Calculators,
        gas_oracle: GasOracle,
        mempool: MempoolSource,
        profiles: ProfileStore,
        lock: WalletLock,
        submitter: TransactionSubmitter,
        tracker: LearningStateTracker,
    ):
        self.calculators = calculators
        self.gas_oracle = gas_oracle
        self.mempool = mempool
        self.profiles = profiles
        self.lock = lock
        self.submitter = submitter
        self.tracker = tracker

    def submit(
        self,
        request: TransferRequest,
        target_gas_price_wei: int | None = None,
        urgency: Urgency = Urgency.MEDIUM,
        moment: datetime | None = None,
    ) -> TransferOutcome:
        """
        Run the full transfer flow.

        Args:
            request: Recipient and amount
            target_gas_price_wei: Price the user is willing to pay; when None
                the standard tier scaled by the multiplier model is
                submitted as the price
            urgency: Passed to the gas optimizer
            moment: Local time for the multiplier model

        Raises:
            WalletLocked: locked at request start
            HardLimitExceeded: amount above the per-transaction cap
            TransferRejected: assessment reached run_away
            ExternalDataUnavailable: gas or mempool collaborator failed
            WalletLockedAtSubmission: locked at the pre-submission check
        """
        if self.lock.is_locked():
            raise WalletLocked("wallet is locked")

        calc = self.calculators
        limit_wei = self.profiles.get_per_transaction_limit_wei()
        calc.risk.check_hard_limit(request, limit_wei)

        gas_tier, conditions = read_network_conditions(calc, self.gas_oracle, self.mempool)

        assessment = calc.risk.assess(
            request,
            network_risk=calc.classifier.network_risk(conditions),
            behavior=self.profiles.get_behavior_profile(),
            per_transaction_limit_wei=limit_wei,
        )
        if assessment.level is RiskLevel.RUN_AWAY:
            logger.warning("transfer_rejected", recipient=request.recipient, factors=list(assessment.factors))
            raise TransferRejected(assessment)

        learning = self.tracker.snapshot()
        if target_gas_price_wei is None:
            gas = calc.gas.decide_base_fee(
                gas_tier,
                conditions,
                gas_tier.standard,
                urgency,
                learning=learning,
                moment=moment,
            )
        else:
            gas = calc.gas.decide(gas_tier, conditions, target_gas_price_wei, urgency, learning=learning)

        if self.lock.is_locked():
            logger.warning("wallet_locked_at_submission", recipient=request.recipient)
            raise WalletLockedAtSubmission("wallet locked before submission")

        try:
            submitted = bool(self.submitter.submit(request, gas.recommended_gas_price_wei))
        except Exception:
            self.tracker.record_outcome(assessment.confidence, succeeded=False)
            raise

        self.tracker.record_outcome(assessment.confidence, succeeded=submitted)
        logger.info(
            "transfer_submitted",
            recipient=request.recipient,
            amount_wei=request.amount_wei,
            gas_price_wei=gas.recommended_gas_price_wei,
            submitted=submitted,
        )
        return TransferOutcome(request=request, assessment=assessment, gas=gas, submitted=submitted)


@dataclass
class TickResult:
    """
    Outcome of one scheduler tick, keyed by strategy id.

    Attributes:
        decisions: Strategies that ran; None for strategies that produce no
            trading decision (gas optimization, network timing, DCA not due)
        failures: Strategies whose run raised; they stay eligible for the
            next tick
        skipped: Strategies the guard refused (in flight or cooling down)
    """
    decisions: Dict[str, TradingDecision | None] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Re-raise the first failure, if any."""
        if self.failures:
            raise next(iter(self.failures.values()))


class StrategyRunner:
    """
    Cooperative scheduler tick over the enabled strategies.

    Each strategy is claimed through StrategyScheduler, so a strategy that is
    still running or inside its cooldown window is skipped, never re-entered.
    A failing strategy does not stop the others; its error is reported in the
    TickResult and its cooldown is not started.
    """

    def __init__(
        self,
        calculators: Calculators,
        book: StrategyBook,
        scheduler: StrategyScheduler,
        tracker: LearningStateTracker,
        prices: PriceSource,
        sentiment: SentimentSource,
        orders: OrderSink,
        gas_oracle: GasOracle,
        mempool: MempoolSource,
        clock: Callable[[], float] = time.time,
    ):
        self.calculators = calculators
        self.book = book
        self.scheduler = scheduler
        self.tracker = tracker
        self.prices = prices
        self.sentiment = sentiment
        self.orders = orders
        self.gas_oracle = gas_oracle
        self.mempool = mempool
        self._clock = clock

    def tick(self, now: float | None = None) -> TickResult:
        """Run every enabled strategy that the guard lets through."""
        if now is None:
            now = self._clock()

        result = TickResult()
        for strategy in self.book.enabled():
            if not self.scheduler.try_begin(strategy, now):
                result.skipped.append(strategy.id)
                continue
            succeeded = False
            try:
                result.decisions[strategy.id] = self.execute(strategy, now)
                succeeded = True
            except Exception as e:
                logger.error(
                    "strategy_failed",
                    strategy_id=strategy.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.failures[strategy.id] = e
            finally:
                self.scheduler.finish(strategy, now, succeeded=succeeded)
        return result

    def execute(self, strategy: Strategy, now: float) -> TradingDecision | None:
        if strategy.type is StrategyType.GAS_OPTIMIZATION:
            self._execute_gas_optimization(strategy)
            return None
        if strategy.type is StrategyType.NETWORK_TIMING:
            return None
        if strategy.type is StrategyType.DCA and not self._dca_due(strategy, now):
            return None
        return self._execute_trading(strategy, now)

    def _execute_gas_optimization(self, strategy: Strategy) -> None:
        _, conditions = read_network_conditions(self.calculators, self.gas_oracle, self.mempool)
        if conditions.confidence < strategy.parameters.get("min_confidence", 0.6):
            return

        if conditions.congestion is CongestionLevel.LOW and conditions.gas_price_gwei < GAS_STRATEGY_MAX_GWEI:
            logger.info("optimal_gas_window", strategy_id=strategy.id, gas_gwei=conditions.gas_price_gwei)
            strategy.performance.total_trades += 1
            strategy.performance.successful_trades += 1
            self.tracker.record_outcome(conditions.confidence, succeeded=True)

    def _execute_trading(self, strategy: Strategy, now: float) -> TradingDecision:
        calc = self.calculators
        asset = strategy.parameters.get("asset", "eth")

        history = self.prices.get_history(asset)
        if strategy.type is StrategyType.MOMENTUM:
            history = lookback_window(history, strategy.parameters.get("lookback_days"))

        indicators = calc.indicators.compute(history)
        _, conditions = read_network_conditions(calc, self.gas_oracle, self.mempool)
        risk_score = calc.classifier.network_risk(conditions)

        decision = calc.strategy.decide(
            indicators,
            self.sentiment.get_sentiment(asset),
            risk_score,
            asset,
            learning=self.tracker.snapshot(),
        )

        if strategy.type is StrategyType.DCA:
            decision = self._dca_decision(strategy, decision)
        elif strategy.type is StrategyType.MOMENTUM:
            decision = self._momentum_gate(strategy, decision, history)
            strategy.parameters["last_signal"] = decision.action.value
        elif strategy.type is StrategyType.AI_CUSTOM:
            threshold = strategy.parameters.get("confidence_threshold", 0.0)
            if decision.action is not TradeAction.HOLD and decision.confidence < threshold:
                decision = hold(decision, "confidence below strategy threshold")

        if decision.action is TradeAction.HOLD:
            return decision

        # trading amounts are fractions of the strategy allocation; DCA amounts are absolute
        amount = decision.amount
        if strategy.type is not StrategyType.DCA:
            amount = decision.amount * strategy.max_allocation_percent / 100

        order = TradeOrder(
            id=f"order_{uuid.uuid4().hex[:12]}",
            strategy_id=strategy.id,
            action=decision.action,
            asset=asset,
            amount=amount,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
            created_at=now,
        )
        placed = bool(self.orders.place(order))

        strategy.performance.total_trades += 1
        if placed:
            strategy.performance.successful_trades += 1
            if strategy.type is StrategyType.DCA:
                interval = DCA_INTERVALS[strategy.parameters["interval"]]
                strategy.parameters["next_execution"] = now + interval
        self.tracker.record_outcome(decision.confidence, succeeded=placed)
        logger.info(
            "strategy_order",
            strategy_id=strategy.id,
            action=order.action.value,
            amount=order.amount,
            placed=placed,
        )
        return decision

    @staticmethod
    def _dca_due(strategy: Strategy, now: float) -> bool:
        next_execution = strategy.parameters.get("next_execution")
        if next_execution is not None and now < next_execution:
            logger.debug("dca_not_due", strategy_id=strategy.id, next_execution=next_execution)
            return False
        return True

    def _dca_decision(self, strategy: Strategy, decision: TradingDecision) -> TradingDecision:
        """DCA buys its configured amount on schedule unless risk blocks buying."""
        max_buy_risk = self.calculators.strategy.config["max_buy_risk"]
        if decision.risk_score >= max_buy_risk:
            action = TradeAction.HOLD
            factors = decision.factors + ("risk too high for scheduled buy",)
        else:
            action = TradeAction.BUY
            factors = ("scheduled DCA buy",)
        confidence = clamp01(1 - decision.risk_score)
        return TradingDecision(
            action=action,
            asset=decision.asset,
            amount=float(strategy.parameters["amount"]),
            confidence=confidence,
            risk_score=decision.risk_score,
            reasoning=formatting.trading_reasoning(action, decision.asset, factors, confidence, decision.risk_score),
            factors=factors,
        )

    @staticmethod
    def _momentum_gate(
        strategy: Strategy, decision: TradingDecision, history: Sequence[PricePoint | tuple[int, float]]
    ) -> TradingDecision:
        """Trade only when the lookback price move agrees with the action and clears the threshold."""
        threshold = strategy.parameters.get("threshold", 0.0)
        momentum = price_momentum(to_series(history))
        if decision.action is TradeAction.BUY and momentum < threshold:
            return hold(decision, "momentum below threshold")
        if decision.action is TradeAction.SELL and momentum > -threshold:
            return hold(decision, "momentum below threshold")
        return decision


def lookback_window(
    history: Sequence[PricePoint | tuple[int, float]], lookback_days: float | None
) -> list[PricePoint | tuple[int, float]]:
    """Points within `lookback_days` of the most recent one."""
    points = list(history)
    if not points or not lookback_days:
        return points

    def timestamp(point):
        return point.timestamp if isinstance(point, PricePoint) else point[0]

    start = timestamp(points[-1]) - lookback_days * SECONDS_PER_DAY
    return [p for p in points if timestamp(p) >= start]


def hold(decision: TradingDecision, factor: str) -> TradingDecision:
    """Turn a decision into a hold, keeping its scores and adding the reason."""
    factors = decision.factors + (factor,)
    return replace(
        decision,
        action=TradeAction.HOLD,
        factors=factors,
        reasoning=formatting.trading_reasoning(
            TradeAction.HOLD, decision.asset, factors, decision.confidence, decision.risk_score
        ),
    )
