"""
Presentation text for decision results.

Everything here is a pure function of already-computed values. No text in this
module feeds back into any score, level or amount.
"""
from typing import Iterable

from tempest_core.types import (
    CongestionLevel,
    GasAction,
    NetworkConditions,
    RiskLevel,
    TradeAction,
)

RISK_RECOMMENDATIONS = {
    RiskLevel.LOW: "Transaction looks fine, proceed with caution.",
    RiskLevel.MEDIUM: "Moderate risk. Double-check the details.",
    RiskLevel.HIGH: "High risk detected. Consider waiting before sending.",
    RiskLevel.RUN_AWAY: "Abort: this transfer matches multiple high-risk signals.",
}

CONGESTION_RECOMMENDATIONS = {
    CongestionLevel.LOW: "Great time to transact - low gas prices",
    CongestionLevel.MEDIUM: "Moderate gas prices - consider waiting if not urgent",
    CongestionLevel.HIGH: "High gas prices - delay non-urgent transactions",
    CongestionLevel.CRITICAL: "Critical congestion - avoid transactions if possible",
}

GAS_REASONS = {
    GasAction.DELAY_TRANSACTION: "Network congestion high - delaying for better gas prices",
    GasAction.EXECUTE_NOW: "Executing immediately with fast gas price",
}

ACTION_VERBS = {
    TradeAction.BUY: "Buy",
    TradeAction.SELL: "Sell",
    TradeAction.HOLD: "Hold",
}


def bucket(value: float) -> str:
    """low below 0.3, high above 0.7, medium otherwise"""
    if value < 0.3:
        return "low"
    if value > 0.7:
        return "high"
    return "medium"


def risk_recommendation(level: RiskLevel) -> str:
    return RISK_RECOMMENDATIONS[level]


def congestion_recommendation(congestion: CongestionLevel) -> str:
    return CONGESTION_RECOMMENDATIONS[congestion]


def gas_reasoning(action: GasAction, used_slow_tier: bool) -> str:
    if action in GAS_REASONS:
        return GAS_REASONS[action]
    if used_slow_tier:
        return "Using slow gas price for maximum savings"
    return "Using standard optimized gas price"


def base_fee_reasoning(action: GasAction) -> str:
    if action is GasAction.DELAY_TRANSACTION:
        return GAS_REASONS[action]
    return "Using provider base fee scaled for network, time and personality"


def network_factors(conditions: NetworkConditions, confidence: float) -> tuple[str, ...]:
    return (
        f"Network congestion: {conditions.congestion.value}",
        f"Mempool size: {conditions.mempool_size} transactions",
        f"Current gas prices: {conditions.gas_price_gwei:.1f} Gwei",
        f"Confidence: {round(confidence * 100)}%",
    )


def trading_reasoning(
    action: TradeAction,
    asset: str,
    factors: Iterable[str],
    confidence: float,
    risk_score: float,
) -> str:
    """
    Template a one-paragraph explanation of a trading decision.

    Example:
        "Buy ETH: oversold, short-term trend above long-term trend. Confidence
        medium (45%), risk low (20%)."
    """
    factor_text = ", ".join(factors) or "no signals"
    return (
        f"{ACTION_VERBS[action]} {asset.upper()}: {factor_text}. "
        f"Confidence {bucket(confidence)} ({confidence:.0%}), "
        f"risk {bucket(risk_score)} ({risk_score:.0%})."
    )
