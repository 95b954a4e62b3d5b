"""
Transfer risk assessment - DETERMINISTIC, NO RANDOM FLAGS.

The per-transaction hard limit is checked before anything else and raises;
heuristic scoring only ever sees transfers that already passed it.
"""
from typing import Dict, Iterable, Literal

import structlog

from tempest_core.decision_system import formatting
from tempest_core.decision_system.parameters import load_parameters
from tempest_core.decision_system.risk.reputation import (
    ReputationSource,
    StaticReputationSource,
    matches_suspicious_pattern,
)
from tempest_core.errors import (
    HardLimitExceeded,
    RecipientNotAllowed,
    ReputationLookupError,
)
from tempest_core.types import (
    BehaviorProfile,
    RiskAssessment,
    RiskLevel,
    TransactionFrequency,
    TransferRequest,
    clamp01,
)

logger = structlog.get_logger(__name__)

SUSPICIOUS_RECIPIENT = "suspicious recipient address"
FLAGGED_RECIPIENT = "recipient flagged by reputation source"
REPUTATION_UNAVAILABLE = "recipient reputation unavailable"
LARGE_AMOUNT = "large transaction amount"
UNUSUAL_PATTERN = "unusual transaction pattern"
UNFAVORABLE_NETWORK = "unfavorable network conditions"


class RiskAssessmentEngine:
    """
    Evaluate a proposed transfer.

    Attributes:
        large_transfer_threshold_wei: Amount above which a transfer escalates
            (high -> run_away, otherwise -> medium); distinct from the hard limit
        unusual_transfer_threshold_wei: Amount that is unusual for a
            low-frequency account
        network_risk_threshold: Network risk at or above which the transfer is
            at least medium
        failure_mode: What a failed reputation lookup means
    """

    def __init__(
        self,
        large_transfer_threshold_wei: int,
        unusual_transfer_threshold_wei: int,
        network_risk_threshold: float = 0.8,
        reputation: ReputationSource | None = None,
        failure_mode: Literal["fail_closed", "fail_open"] = "fail_closed",
        whitelist: Iterable[str] = (),
        config: Dict | None = None,
    ):
        if config is None:
            config = load_parameters()["risk"]
        self.config = config
        self.large_transfer_threshold_wei = large_transfer_threshold_wei
        self.unusual_transfer_threshold_wei = unusual_transfer_threshold_wei
        self.network_risk_threshold = network_risk_threshold
        self.reputation = reputation or StaticReputationSource()
        self.failure_mode = failure_mode
        self.whitelist = frozenset(a.lower() for a in whitelist)

    @staticmethod
    def check_hard_limit(request: TransferRequest, per_transaction_limit_wei: int) -> None:
        """Raise HardLimitExceeded when amount > limit (the limit itself is allowed)."""
        if request.amount_wei > per_transaction_limit_wei:
            logger.warning(
                "hard_limit_exceeded",
                amount_wei=request.amount_wei,
                limit_wei=per_transaction_limit_wei,
            )
            raise HardLimitExceeded(request.amount_wei, per_transaction_limit_wei)

    def assess(
        self,
        request: TransferRequest,
        network_risk: float,
        behavior: BehaviorProfile,
        per_transaction_limit_wei: int,
    ) -> RiskAssessment:
        """
        Perform complete transfer risk assessment.

        Args:
            request: Recipient and amount
            network_risk: Contribution from NetworkConditionClassifier.network_risk
            behavior: Stored behaviour profile of the sender
            per_transaction_limit_wei: Hard cap; exceeding it raises

        Returns:
            RiskAssessment with the highest level reached by any check

        Raises:
            HardLimitExceeded: amount above the cap, before any scoring
            RecipientNotAllowed: allow-list configured and recipient not on it
        """
        self.check_hard_limit(request, per_transaction_limit_wei)

        if self.whitelist and request.recipient.lower() not in self.whitelist:
            logger.warning("recipient_not_whitelisted", recipient=request.recipient)
            raise RecipientNotAllowed(f"recipient {request.recipient} is not whitelisted")

        factors: list[str] = []
        level = RiskLevel.LOW

        recipient_factor = self._recipient_factor(request.recipient)
        if recipient_factor is not None:
            factors.append(recipient_factor)
            level = RiskLevel.HIGH

        if request.amount_wei > self.large_transfer_threshold_wei:
            factors.append(LARGE_AMOUNT)
            level = RiskLevel.RUN_AWAY if level is RiskLevel.HIGH else RiskLevel.max(level, RiskLevel.MEDIUM)

        if (
            request.amount_wei > self.unusual_transfer_threshold_wei
            and behavior.transaction_frequency is TransactionFrequency.LOW
        ):
            factors.append(UNUSUAL_PATTERN)
            level = RiskLevel.max(level, RiskLevel.MEDIUM)

        if network_risk >= self.network_risk_threshold:
            factors.append(UNFAVORABLE_NETWORK)
            level = RiskLevel.max(level, RiskLevel.MEDIUM)

        confidence = clamp01(
            self.config["base_confidence"]
            * (1 - self.config["confidence_penalty_per_factor"] * len(factors))
        )

        assessment = RiskAssessment(
            level=level,
            factors=tuple(factors),
            confidence=confidence,
            recommendation_text=formatting.risk_recommendation(level),
        )

        logger.info(
            "risk_assessment_complete",
            level=assessment.level.value,
            factors=list(assessment.factors),
            confidence=assessment.confidence,
        )
        return assessment

    def _recipient_factor(self, recipient: str) -> str | None:
        if matches_suspicious_pattern(recipient):
            return SUSPICIOUS_RECIPIENT

        try:
            flagged = self.reputation.is_flagged(recipient)
        except ReputationLookupError as e:
            if self.failure_mode == "fail_open":
                logger.warning("reputation_lookup_failed", recipient=recipient, error=str(e), mode="fail_open")
                return None
            logger.warning("reputation_lookup_failed", recipient=recipient, error=str(e), mode="fail_closed")
            return REPUTATION_UNAVAILABLE

        return FLAGGED_RECIPIENT if flagged else None
