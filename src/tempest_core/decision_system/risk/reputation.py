"""
Recipient reputation lookups.

A ReputationSource answers one question deterministically: is this address
known to be bad? Sources that cannot answer raise ReputationLookupError and
the risk engine applies the configured failure mode.
"""
import re
from typing import Iterable, Protocol

from tempest_core.errors import ReputationLookupError

# Null-like, burn and repeated-digit vanity addresses
LEADING_ZEROS_PATTERN = re.compile(r"^0x000")
BURN_PATTERN = re.compile(r"^0xdead", re.IGNORECASE)
IDENTICAL_DIGIT_PATTERN = re.compile(r"^0x([1-9])\1{39}$")

SUSPICIOUS_PATTERNS = (LEADING_ZEROS_PATTERN, BURN_PATTERN, IDENTICAL_DIGIT_PATTERN)


def matches_suspicious_pattern(address: str) -> bool:
    return any(pattern.search(address) for pattern in SUSPICIOUS_PATTERNS)


class ReputationSource(Protocol):
    def is_flagged(self, address: str) -> bool:
        ...


class StaticReputationSource:
    """Deny-list lookup; addresses compare case-insensitively."""

    def __init__(self, denied: Iterable[str] = ()):
        self._denied = frozenset(a.lower() for a in denied)

    def is_flagged(self, address: str) -> bool:
        return address.lower() in self._denied


class UnavailableReputationSource:
    """Source for deployments with no reputation backend: every lookup fails."""

    def is_flagged(self, address: str) -> bool:
        raise ReputationLookupError("no reputation backend configured")
