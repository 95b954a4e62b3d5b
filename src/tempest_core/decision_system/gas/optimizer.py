"""
Gas price optimizer - PURE MATH, NO I/O.

Chooses between executing now, optimizing the fee and delaying, and scales
provider base fees by congestion, time of day and personality.
"""
import random
from dataclasses import replace
from datetime import datetime
from typing import Dict

import structlog

from tempest_core.decision_system import formatting
from tempest_core.decision_system.gas.multipliers import GasMultiplierModel
from tempest_core.decision_system.network.classifier import NetworkConditionClassifier
from tempest_core.decision_system.parameters import load_parameters
from tempest_core.types import (
    CongestionLevel,
    GasAction,
    GasDecision,
    GasTier,
    LearningSnapshot,
    NetworkConditions,
    RiskTolerance,
    Urgency,
    clamp01,
)

logger = structlog.get_logger(__name__)


class GasPriceOptimizer:
    """
    Gas price decisions.

    Orchestrates:
    1. Tier selection from the target price and urgency
    2. Network risk scoring (via the classifier)
    3. Base fee scaling through GasMultiplierModel
    """

    def __init__(
        self,
        personality: RiskTolerance = RiskTolerance.MODERATE,
        config: Dict | None = None,
        classifier: NetworkConditionClassifier | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            personality: Configured risk tolerance used by recommend_base_fee
            config: Full parameters dict (gas and network sections)
            classifier: Shared classifier; built from config when None
            rng: Random source for the ai_decides personality
        """
        if config is None:
            config = load_parameters()
        self.config = config["gas"]
        self.personality = personality
        self.classifier = classifier or NetworkConditionClassifier(config["network"])
        self.multipliers = GasMultiplierModel(self.config, rng)

    def decide(
        self,
        gas_tier: GasTier,
        conditions: NetworkConditions,
        target_gas_price_wei: int,
        urgency: Urgency = Urgency.MEDIUM,
        learning: LearningSnapshot | None = None,
    ) -> GasDecision:
        """
        Pick an action and tier price for a target gas price.

        Rules, first match wins:
        1. target <= slow: delay when congestion is high and urgency low,
           otherwise optimize at the slow price
        2. target >= fast or urgency high: execute now at the fast price
        3. otherwise optimize at the standard price

        Args:
            gas_tier: Fee oracle quote (wei)
            conditions: Network snapshot for the same moment
            target_gas_price_wei: Price the user is willing to pay
            urgency: How soon the transfer must land
            learning: Feedback snapshot; scales confidence around 0.5

        Returns:
            GasDecision
        """
        if target_gas_price_wei < 0:
            raise ValueError("target_gas_price_wei must be non-negative")

        confidence = conditions.confidence
        used_slow_tier = False

        if target_gas_price_wei <= gas_tier.slow:
            used_slow_tier = True
            recommended = gas_tier.slow
            if conditions.congestion is CongestionLevel.HIGH and urgency is Urgency.LOW:
                action = GasAction.DELAY_TRANSACTION
                confidence *= self.config["delay_confidence_factor"]
            else:
                action = GasAction.OPTIMIZE_GAS
        elif target_gas_price_wei >= gas_tier.fast or urgency is Urgency.HIGH:
            action = GasAction.EXECUTE_NOW
            recommended = gas_tier.fast
        else:
            action = GasAction.OPTIMIZE_GAS
            recommended = gas_tier.standard

        if learning is not None:
            confidence *= 0.5 + learning.confidence_score
        confidence = clamp01(confidence)

        decision = GasDecision(
            action=action,
            recommended_gas_price_wei=int(recommended),
            estimated_wait_time_seconds=conditions.avg_wait_time_seconds,
            confidence=confidence,
            reasoning=formatting.gas_reasoning(action, used_slow_tier),
            risk_score=self.classifier.network_risk(conditions),
            gas_savings_wei=max(target_gas_price_wei - int(recommended), 0),
            network_factors=formatting.network_factors(conditions, confidence),
        )

        logger.info(
            "gas_decision",
            action=decision.action.value,
            recommended_wei=decision.recommended_gas_price_wei,
            savings_wei=decision.gas_savings_wei,
            confidence=decision.confidence,
        )
        return decision

    def recommend_base_fee(
        self,
        base_fee_wei: int,
        conditions: NetworkConditions,
        moment: datetime | None = None,
        personality: RiskTolerance | None = None,
    ) -> int:
        """
        Scale a provider base fee when no explicit target is given.

        Args:
            base_fee_wei: Provider-supplied fee
            conditions: Network snapshot (only congestion is used)
            moment: Local time of the decision; now when None
            personality: Overrides the configured personality

        Returns:
            Recommended gas price in whole wei
        """
        if moment is None:
            moment = datetime.now()
        if personality is None:
            personality = self.personality

        price = self.multipliers.apply(base_fee_wei, conditions.congestion, personality, moment)
        logger.debug(
            "base_fee_scaled",
            base_fee_wei=base_fee_wei,
            recommended_wei=price,
            congestion=conditions.congestion.value,
            personality=personality.value,
        )
        return price

    def decide_base_fee(
        self,
        gas_tier: GasTier,
        conditions: NetworkConditions,
        base_fee_wei: int,
        urgency: Urgency = Urgency.MEDIUM,
        learning: LearningSnapshot | None = None,
        moment: datetime | None = None,
    ) -> GasDecision:
        """
        Price a transfer that came without a target.

        The scaled base fee from recommend_base_fee is the price submitted; the
        tier rules only pick the action and confidence for it.

        Returns:
            GasDecision whose recommended price is the scaled fee and whose
            savings are measured against the unscaled base fee
        """
        scaled = self.recommend_base_fee(base_fee_wei, conditions, moment)
        tiered = self.decide(gas_tier, conditions, scaled, urgency, learning)
        return replace(
            tiered,
            recommended_gas_price_wei=scaled,
            gas_savings_wei=max(int(base_fee_wei) - scaled, 0),
            reasoning=formatting.base_fee_reasoning(tiered.action),
        )
