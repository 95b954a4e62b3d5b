"""
Error taxonomy for the decision core.

HardLimitExceeded, WalletLocked* and TransferRejected always abort the
request. ExternalDataUnavailable is surfaced to the caller instead of being
replaced with synthetic data. InsufficientHistory exists for callers that want
to name the condition; the indicator engine absorbs it into neutral values.
"""


class TempestError(Exception):
    """Base class for all decision core errors"""


class HardLimitExceeded(TempestError):
    """Transfer amount is above the per-transaction cap. Never retryable."""

    def __init__(self, amount_wei: int, limit_wei: int):
        self.amount_wei = amount_wei
        self.limit_wei = limit_wei
        super().__init__(
            f"transfer of {amount_wei} wei exceeds per-transaction limit of {limit_wei} wei"
        )


class ExternalDataUnavailable(TempestError):
    """A gas, mempool or price collaborator failed or returned incomplete data"""


class InsufficientHistory(TempestError):
    """Fewer price points than an indicator window needs"""


class WalletLocked(TempestError):
    """Wallet was locked when the request started"""


class WalletLockedAtSubmission(TempestError):
    """Wallet lock detected at the final check right before submission"""


class TransferRejected(TempestError):
    """Risk assessment reached run_away"""

    def __init__(self, assessment):
        self.assessment = assessment
        super().__init__(f"transfer rejected: {assessment.recommendation_text}")


class RecipientNotAllowed(TempestError):
    """Recipient is not on the configured allow-list"""


class ReputationLookupError(TempestError):
    """Reputation source could not answer"""


class StrategyNotFound(TempestError, KeyError):
    """No strategy with the given id"""
