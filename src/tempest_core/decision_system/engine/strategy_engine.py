"""
Strategy decision engine - PURE MATH, NO I/O.

Additive signal scoring over a TechnicalIndicatorSet, risk dampening and
bounded position sizing.
"""
from typing import Dict

import structlog

from tempest_core.decision_system import formatting
from tempest_core.decision_system.parameters import load_parameters
from tempest_core.types import (
    LearningSnapshot,
    Sentiment,
    TechnicalIndicatorSet,
    TradeAction,
    TradingDecision,
    clamp01,
)

logger = structlog.get_logger(__name__)


class StrategyDecisionEngine:
    """Weighted buy/sell/hold decisions with position sizing"""

    def __init__(self, config: Dict | None = None):
        if config is None:
            config = load_parameters()["strategy"]
        self.config = config

    def score(
        self,
        indicators: TechnicalIndicatorSet,
        sentiment: Sentiment,
    ) -> tuple[float, list[str]]:
        """
        Raw (undampened) signal score.

        Terms (additive, order-independent):
            RSI < oversold              +rsi        "oversold"
            RSI > overbought            -rsi        "overbought"
            SMA(short) > SMA(long)      ±trend
            MACD > 0                    ±macd
            sentiment positive          ±sentiment

        Returns:
            (score, factors)
        """
        cfg = self.config
        w = cfg["weights"]
        score = 0.0
        factors: list[str] = []

        if indicators.rsi < cfg["rsi_oversold"]:
            score += w["rsi"]
            factors.append("oversold")
        elif indicators.rsi > cfg["rsi_overbought"]:
            score -= w["rsi"]
            factors.append("overbought")

        sma_short = indicators.sma.get(cfg["sma_short"], 0.0)
        sma_long = indicators.sma.get(cfg["sma_long"], 0.0)
        if sma_short > sma_long:
            score += w["trend"]
            factors.append("short-term trend above long-term trend")
        else:
            score -= w["trend"]
            factors.append("short-term trend below long-term trend")

        if indicators.macd > 0:
            score += w["macd"]
            factors.append("positive MACD")
        else:
            score -= w["macd"]
            factors.append("non-positive MACD")

        if sentiment is Sentiment.POSITIVE:
            score += w["sentiment"]
            factors.append("positive market sentiment")
        else:
            score -= w["sentiment"]
            factors.append("negative market sentiment")

        return score, factors

    def position_size(self, risk_score: float, confidence: float) -> float:
        """
        Fraction of allocated capital to commit.

        Formula: clamp(base × (1 - risk) × confidence, min, max)
        """
        cfg = self.config
        raw = cfg["base_position"] * (1 - risk_score) * confidence
        return min(cfg["max_position"], max(cfg["min_position"], raw))

    def decide(
        self,
        indicators: TechnicalIndicatorSet,
        sentiment: Sentiment,
        risk_score: float,
        asset: str,
        learning: LearningSnapshot | None = None,
    ) -> TradingDecision:
        """
        Produce a trading decision.

        Args:
            indicators: Output of TechnicalIndicatorEngine.compute
            sentiment: Market sentiment direction
            risk_score: Risk in [0, 1]; clamped
            asset: Symbol the decision is for
            learning: Feedback snapshot; scales the reported confidence only

        Returns:
            TradingDecision
        """
        cfg = self.config
        risk_score = clamp01(risk_score)

        score, factors = self.score(indicators, sentiment)
        score *= 1 - risk_score * cfg["risk_dampening"]

        threshold = cfg["action_threshold"]
        if score > threshold and risk_score < cfg["max_buy_risk"]:
            action = TradeAction.BUY
        elif score < -threshold:
            action = TradeAction.SELL
        else:
            action = TradeAction.HOLD
            factors.append("signals mixed")

        signal_strength = abs(score)
        amount = self.position_size(risk_score, signal_strength)

        confidence = clamp01(signal_strength)
        if learning is not None:
            confidence = clamp01(confidence * (0.5 + learning.confidence_score))

        decision = TradingDecision(
            action=action,
            asset=asset,
            amount=amount,
            confidence=confidence,
            risk_score=risk_score,
            reasoning=formatting.trading_reasoning(action, asset, factors, confidence, risk_score),
            factors=tuple(factors),
        )

        logger.info(
            "trading_decision",
            asset=asset,
            action=action.value,
            score=round(score, 4),
            amount=amount,
            confidence=confidence,
        )
        return decision
