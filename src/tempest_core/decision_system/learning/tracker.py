"""
Learning state feedback loop.

A running counter, not a model: total outcomes, cumulative success rate and a
confidence score nudged toward each reported confidence.
"""
import threading

import structlog

from tempest_core.types import LearningSnapshot, clamp01

logger = structlog.get_logger(__name__)


class LearningStateTracker:
    """
    Process-lifetime accumulator of transfer/strategy outcomes.

    Writers are serialized with a lock so the running mean and the nudge are
    applied atomically per call. Readers get an immutable snapshot.
    """

    def __init__(self, step: float = 0.1, initial: LearningSnapshot | None = None):
        if not 0 < step <= 1:
            raise ValueError("step must be in (0, 1]")
        self.step = step
        self._lock = threading.Lock()
        self._state = LearningSnapshot()
        self._successes = 0
        if initial is not None:
            self.restore(initial)

    def record_outcome(self, confidence: float, succeeded: bool) -> LearningSnapshot:
        """
        Fold one outcome into the state.

        Args:
            confidence: Confidence the decision was taken with
            succeeded: Whether the transfer/strategy cycle succeeded

        Returns:
            Snapshot after the update
        """
        with self._lock:
            total = self._state.total_transactions + 1
            if succeeded:
                self._successes += 1
            current = self._state.confidence_score
            self._state = LearningSnapshot(
                total_transactions=total,
                confidence_score=clamp01(current + self.step * (clamp01(confidence) - current)),
                success_rate=clamp01(self._successes / total),
            )
            snapshot = self._state

        logger.debug(
            "outcome_recorded",
            succeeded=succeeded,
            total=snapshot.total_transactions,
            success_rate=snapshot.success_rate,
            confidence_score=snapshot.confidence_score,
        )
        return snapshot

    def snapshot(self) -> LearningSnapshot:
        with self._lock:
            return self._state

    def restore(self, snapshot: LearningSnapshot) -> None:
        """Seed from persisted state; successes rebuilt from rate × total."""
        with self._lock:
            self._state = snapshot
            self._successes = round(snapshot.success_rate * snapshot.total_transactions)

    def reset(self) -> None:
        """Forget all history."""
        with self._lock:
            self._state = LearningSnapshot()
            self._successes = 0
        logger.info("learning_state_reset")
