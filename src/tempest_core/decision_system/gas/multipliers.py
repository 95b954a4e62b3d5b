"""
Gas price multiplier model.

total = network × time × personality, applied to a base fee with scaled
integer arithmetic so the result is always a whole number of wei.
"""
import random
from datetime import datetime
from typing import Dict

from tempest_core.types import CongestionLevel, RiskTolerance


class GasMultiplierModel:
    """
    Multipliers for a provider-supplied base fee.

    RiskTolerance.AI_DECIDES is intentionally non-deterministic: it draws a
    uniform multiplier in [0.8, 1.2] from the injected random generator on every
    call. Pass a seeded random.Random to make it reproducible in tests. Every
    other personality is deterministic.
    """

    def __init__(self, config: Dict, rng: random.Random | None = None):
        self.config = config
        self.rng = rng if rng is not None else random.Random()

    def network_multiplier(self, congestion: CongestionLevel) -> float:
        return self.config["network_multipliers"][congestion.value]

    def time_multiplier(self, moment: datetime) -> float:
        """
        Local time-of-day/day-of-week multiplier.

        Rules in order, first match wins: off-peak hours, peak hours, weekend.
        """
        tm = self.config["time_multipliers"]
        hour = moment.hour

        off_start, off_end = tm["off_peak_hours"]
        if off_start <= hour <= off_end:
            return tm["off_peak"]

        peak_start, peak_end = tm["peak_hours"]
        if peak_start <= hour <= peak_end:
            return tm["peak"]

        if moment.weekday() >= 5:
            return tm["weekend"]

        return 1.0

    def personality_multiplier(self, personality: RiskTolerance) -> float:
        if personality is RiskTolerance.AI_DECIDES:
            low, high = self.config["ai_decides_range"]
            return self.rng.uniform(low, high)
        return self.config["personality_multipliers"][personality.value]

    def total_multiplier(
        self,
        congestion: CongestionLevel,
        personality: RiskTolerance,
        moment: datetime,
    ) -> float:
        return (
            self.network_multiplier(congestion)
            * self.time_multiplier(moment)
            * self.personality_multiplier(personality)
        )

    def apply(
        self,
        base_fee_wei: int,
        congestion: CongestionLevel,
        personality: RiskTolerance,
        moment: datetime,
    ) -> int:
        """
        Scale a base fee.

        Formula: base_fee × round(total × 100) // 100

        Returns:
            Non-negative integer wei
        """
        if base_fee_wei < 0:
            raise ValueError("base_fee_wei must be non-negative")

        scaled = round(self.total_multiplier(congestion, personality, moment) * 100)
        return int(base_fee_wei) * scaled // 100
