"""
Network condition classification - PURE MATH, NO I/O.

Turns a gas tier quote and mempool figures into a congestion level, a wait
time estimate and the network risk contribution used by transfer scoring.
"""
from typing import Dict

import structlog
from web3 import Web3

from tempest_core.decision_system.parameters import load_parameters
from tempest_core.types import (
    CongestionLevel,
    GasTier,
    MempoolStats,
    NetworkConditions,
    clamp01,
)

logger = structlog.get_logger(__name__)


class NetworkConditionClassifier:
    """Classify network load from fee level and pending transaction count"""

    def __init__(self, config: Dict | None = None):
        if config is None:
            config = load_parameters()["network"]
        self.config = config

    def congestion_level(self, standard_gas_gwei: float, pending_tx_count: int) -> CongestionLevel:
        """
        Congestion rules, evaluated in order, first match wins.

        Both gas and pending count must be under a level's bounds for it to
        apply, so the result never decreases when either input grows.
        """
        thresholds = self.config["congestion_thresholds"]
        for level in (CongestionLevel.LOW, CongestionLevel.MEDIUM, CongestionLevel.HIGH):
            max_gas, max_pending = thresholds[level.value]
            if standard_gas_gwei < max_gas and pending_tx_count < max_pending:
                return level
        return CongestionLevel.CRITICAL

    def estimate_wait_time(self, standard_gas_gwei: float, pending_tx_count: int) -> float:
        """
        Expected confirmation wait in seconds.

        Above the slow tier the fee alone decides; at or below it the wait grows
        with the mempool backlog (capped).
        """
        base = self.config["base_block_time"]
        wt = self.config["wait_time"]

        if standard_gas_gwei > wt["fast_gas_gwei"]:
            return float(base * 1)
        if standard_gas_gwei > wt["medium_gas_gwei"]:
            return float(base * 2)
        if standard_gas_gwei > wt["slow_gas_gwei"]:
            return float(base * 3)

        backlog = min(pending_tx_count / wt["mempool_unit"], wt["max_mempool_factor"])
        return float(base * (3 + backlog))

    def classify(
        self,
        standard_gas_gwei: float,
        pending_tx_count: int,
        confidence: float = 1.0,
    ) -> NetworkConditions:
        """
        Build a fresh NetworkConditions snapshot.

        Args:
            standard_gas_gwei: Standard tier gas price in gwei
            pending_tx_count: Pending transactions in the mempool
            confidence: Oracle confidence carried into the snapshot

        Returns:
            Immutable NetworkConditions
        """
        if standard_gas_gwei < 0:
            raise ValueError("standard_gas_gwei must be non-negative")
        if pending_tx_count < 0:
            raise ValueError("pending_tx_count must be non-negative")

        conditions = NetworkConditions(
            gas_price_gwei=float(standard_gas_gwei),
            congestion=self.congestion_level(standard_gas_gwei, pending_tx_count),
            mempool_size=int(pending_tx_count),
            avg_wait_time_seconds=self.estimate_wait_time(standard_gas_gwei, pending_tx_count),
            confidence=clamp01(confidence),
        )
        logger.debug(
            "network_classified",
            gas_gwei=conditions.gas_price_gwei,
            pending=conditions.mempool_size,
            congestion=conditions.congestion.value,
        )
        return conditions

    def classify_snapshot(self, gas_tier: GasTier, mempool: MempoolStats) -> NetworkConditions:
        """Classify straight from collaborator snapshots (wei quote -> gwei)."""
        standard_gwei = float(Web3.from_wei(gas_tier.standard, "gwei"))
        return self.classify(standard_gwei, mempool.pending_count, gas_tier.confidence)

    def network_risk(self, conditions: NetworkConditions) -> float:
        """
        Additive network risk contribution in [0, 1].

        Formula: base + congestion term + gas price term + wait time term
        """
        rc = self.config["risk"]
        risk = rc["base"]
        risk += rc["congestion"][conditions.congestion.value]

        if conditions.gas_price_gwei > rc["gas_extreme_gwei"]:
            risk += rc["gas_extreme_term"]
        elif conditions.gas_price_gwei > rc["gas_elevated_gwei"]:
            risk += rc["gas_elevated_term"]

        if conditions.avg_wait_time_seconds > rc["long_wait_seconds"]:
            risk += rc["long_wait_term"]

        return clamp01(risk)
