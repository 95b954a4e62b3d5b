import random
from datetime import datetime

import pytest

from tempest_core.decision_system import formatting
from tempest_core.decision_system.gas.optimizer import GasPriceOptimizer
from tempest_core.types import (
    CongestionLevel,
    GasAction,
    LearningSnapshot,
    NetworkConditions,
    RiskTolerance,
    Urgency,
)

from conftest import GWEI

WEDNESDAY_NOON = datetime(2024, 1, 3, 12, 0)
WEDNESDAY_EVENING = datetime(2024, 1, 3, 20, 0)
WEDNESDAY_NIGHT = datetime(2024, 1, 3, 3, 0)
SATURDAY_EVENING = datetime(2024, 1, 6, 20, 0)
SATURDAY_NIGHT = datetime(2024, 1, 6, 3, 0)
SATURDAY_NOON = datetime(2024, 1, 6, 12, 0)


@pytest.fixture
def optimizer(parameters):
    return GasPriceOptimizer(RiskTolerance.MODERATE, parameters)


def conditions_with(congestion: CongestionLevel) -> NetworkConditions:
    return NetworkConditions(
        gas_price_gwei=15.0,
        congestion=congestion,
        mempool_size=1_000,
        avg_wait_time_seconds=36.0,
        confidence=0.9,
    )


def test_slow_target_low_urgency_optimizes_at_slow(optimizer, gas_tier, low_conditions):
    decision = optimizer.decide(gas_tier, low_conditions, 10 * GWEI, Urgency.LOW)

    assert decision.action is GasAction.OPTIMIZE_GAS
    assert decision.recommended_gas_price_wei == 10 * GWEI
    assert decision.gas_savings_wei == 0
    assert decision.confidence == pytest.approx(0.9)
    assert decision.estimated_wait_time_seconds == 36.0


def test_high_urgency_executes_now_at_fast(optimizer, gas_tier, low_conditions):
    decision = optimizer.decide(gas_tier, low_conditions, 30 * GWEI, Urgency.HIGH)

    assert decision.action is GasAction.EXECUTE_NOW
    assert decision.recommended_gas_price_wei == 60 * GWEI
    assert decision.gas_savings_wei == 0


def test_slow_target_wins_over_high_urgency(optimizer, gas_tier, low_conditions):
    decision = optimizer.decide(gas_tier, low_conditions, 10 * GWEI, Urgency.HIGH)

    assert decision.action is GasAction.OPTIMIZE_GAS
    assert decision.recommended_gas_price_wei == 10 * GWEI


def test_high_congestion_low_urgency_delays(optimizer, gas_tier):
    decision = optimizer.decide(gas_tier, conditions_with(CongestionLevel.HIGH), 5 * GWEI, Urgency.LOW)

    assert decision.action is GasAction.DELAY_TRANSACTION
    assert decision.recommended_gas_price_wei == 10 * GWEI
    assert decision.confidence == pytest.approx(0.72)


def test_critical_congestion_does_not_delay(optimizer, gas_tier):
    decision = optimizer.decide(gas_tier, conditions_with(CongestionLevel.CRITICAL), 5 * GWEI, Urgency.LOW)
    assert decision.action is GasAction.OPTIMIZE_GAS


def test_middle_target_uses_standard_and_reports_savings(optimizer, gas_tier, low_conditions):
    decision = optimizer.decide(gas_tier, low_conditions, 30 * GWEI, Urgency.MEDIUM)

    assert decision.action is GasAction.OPTIMIZE_GAS
    assert decision.recommended_gas_price_wei == 25 * GWEI
    assert decision.gas_savings_wei == 5 * GWEI


def test_target_above_fast_executes_now(optimizer, gas_tier, low_conditions):
    decision = optimizer.decide(gas_tier, low_conditions, 70 * GWEI, Urgency.LOW)

    assert decision.action is GasAction.EXECUTE_NOW
    assert decision.gas_savings_wei == 10 * GWEI


def test_decision_carries_network_risk_and_factors(optimizer, gas_tier, low_conditions):
    decision = optimizer.decide(gas_tier, low_conditions, 30 * GWEI, Urgency.MEDIUM)

    assert decision.risk_score == pytest.approx(0.2)
    assert "Network congestion: low" in decision.network_factors
    assert decision.reasoning == "Using standard optimized gas price"


def test_negative_target_rejected(optimizer, gas_tier, low_conditions):
    with pytest.raises(ValueError):
        optimizer.decide(gas_tier, low_conditions, -1, Urgency.LOW)


@pytest.mark.parametrize(
    "score, expected",
    [
        (0.5, 0.9),
        (1.0, 1.0),
        (0.0, 0.45),
    ],
)
def test_learning_snapshot_scales_confidence(optimizer, gas_tier, low_conditions, score, expected):
    learning = LearningSnapshot(total_transactions=10, confidence_score=score, success_rate=0.5)
    decision = optimizer.decide(gas_tier, low_conditions, 30 * GWEI, Urgency.MEDIUM, learning)
    assert decision.confidence == pytest.approx(expected)


@pytest.mark.parametrize(
    "moment, expected",
    [
        (WEDNESDAY_NIGHT, 0.9),
        (WEDNESDAY_NOON, 1.1),
        (WEDNESDAY_EVENING, 1.0),
        (SATURDAY_EVENING, 0.95),
        (SATURDAY_NIGHT, 0.9),
        (SATURDAY_NOON, 1.1),
        (datetime(2024, 1, 3, 6, 59), 0.9),
        (datetime(2024, 1, 3, 17, 30), 1.1),
        (datetime(2024, 1, 3, 7, 0), 1.0),
    ],
)
def test_time_multiplier_rule_order(optimizer, moment, expected):
    assert optimizer.multipliers.time_multiplier(moment) == expected


@pytest.mark.parametrize(
    "base, congestion, personality, moment, expected",
    [
        (20 * GWEI, CongestionLevel.LOW, RiskTolerance.MODERATE, WEDNESDAY_NOON, 17_600_000_000),
        (10 * GWEI, CongestionLevel.CRITICAL, RiskTolerance.CONSERVATIVE, WEDNESDAY_NIGHT, 21_600_000_000),
        (100, CongestionLevel.HIGH, RiskTolerance.DEGENERATE, SATURDAY_EVENING, 68),
        (30 * GWEI, CongestionLevel.MEDIUM, RiskTolerance.AGGRESSIVE, WEDNESDAY_EVENING, 24_000_000_000),
        (0, CongestionLevel.CRITICAL, RiskTolerance.CONSERVATIVE, WEDNESDAY_NOON, 0),
    ],
)
def test_recommend_base_fee_is_exact(optimizer, base, congestion, personality, moment, expected):
    price = optimizer.recommend_base_fee(base, conditions_with(congestion), moment, personality)

    assert price == expected
    assert isinstance(price, int)


def test_recommend_base_fee_is_reproducible(optimizer):
    conditions = conditions_with(CongestionLevel.HIGH)
    results = {
        optimizer.recommend_base_fee(12_345_678_901, conditions, WEDNESDAY_NOON, RiskTolerance.CONSERVATIVE)
        for _ in range(20)
    }
    assert len(results) == 1


def test_recommend_base_fee_uses_configured_personality(parameters):
    optimizer = GasPriceOptimizer(RiskTolerance.DEGENERATE, parameters)
    price = optimizer.recommend_base_fee(100, conditions_with(CongestionLevel.MEDIUM), WEDNESDAY_EVENING)
    assert price == 60


def test_ai_decides_draws_from_injected_rng(parameters):
    conditions = conditions_with(CongestionLevel.MEDIUM)

    first = GasPriceOptimizer(RiskTolerance.AI_DECIDES, parameters, rng=random.Random(42))
    second = GasPriceOptimizer(RiskTolerance.AI_DECIDES, parameters, rng=random.Random(42))

    a = [first.recommend_base_fee(10 * GWEI, conditions, WEDNESDAY_EVENING) for _ in range(10)]
    b = [second.recommend_base_fee(10 * GWEI, conditions, WEDNESDAY_EVENING) for _ in range(10)]

    assert a == b
    assert all(8 * GWEI <= price <= 12 * GWEI for price in a)
    assert all(isinstance(price, int) for price in a)


def test_negative_base_fee_rejected(optimizer):
    with pytest.raises(ValueError):
        optimizer.recommend_base_fee(-1, conditions_with(CongestionLevel.LOW), WEDNESDAY_NOON)


def test_decide_base_fee_submits_scaled_fee(parameters, gas_tier):
    optimizer = GasPriceOptimizer(RiskTolerance.CONSERVATIVE, parameters)

    decision = optimizer.decide_base_fee(
        gas_tier, conditions_with(CongestionLevel.CRITICAL), 10 * GWEI, moment=WEDNESDAY_NIGHT
    )

    # 2.0 critical x 0.9 off-peak x 1.2 conservative, above the slow tier
    assert decision.recommended_gas_price_wei == 21_600_000_000
    assert decision.gas_savings_wei == 0
    assert decision.action is GasAction.OPTIMIZE_GAS
    assert decision.reasoning == formatting.base_fee_reasoning(GasAction.OPTIMIZE_GAS)


def test_decide_base_fee_delays_below_slow_tier_on_busy_network(parameters, gas_tier):
    optimizer = GasPriceOptimizer(RiskTolerance.DEGENERATE, parameters)

    decision = optimizer.decide_base_fee(
        gas_tier, conditions_with(CongestionLevel.HIGH), 10 * GWEI, Urgency.LOW, moment=WEDNESDAY_EVENING
    )

    assert decision.action is GasAction.DELAY_TRANSACTION
    assert decision.recommended_gas_price_wei == 7_200_000_000
    assert decision.gas_savings_wei == 2_800_000_000
    assert decision.reasoning == formatting.GAS_REASONS[GasAction.DELAY_TRANSACTION]


def test_decide_base_fee_keeps_scaled_fee_when_urgent(optimizer, gas_tier):
    decision = optimizer.decide_base_fee(
        gas_tier, conditions_with(CongestionLevel.MEDIUM), 25 * GWEI, Urgency.HIGH, moment=WEDNESDAY_EVENING
    )

    assert decision.action is GasAction.EXECUTE_NOW
    assert decision.recommended_gas_price_wei == 25 * GWEI
