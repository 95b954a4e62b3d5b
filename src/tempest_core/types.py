"""
Type definitions for the wallet decision core.

Value objects handed across component boundaries are frozen dataclasses so a
snapshot taken for one decision can never change underneath it. Only the
strategy records are mutable, and only the strategy book touches them.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from web3 import Web3


def clamp01(value: float) -> float:
    """Clamp a confidence/probability value into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class CongestionLevel(str, Enum):
    """Discretized network load"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GasAction(str, Enum):
    EXECUTE_NOW = "execute_now"
    OPTIMIZE_GAS = "optimize_gas"
    DELAY_TRANSACTION = "delay_transaction"


class RiskTolerance(str, Enum):
    """User personality biasing fee and trading aggressiveness"""
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"
    DEGENERATE = "degenerate"
    AI_DECIDES = "ai_decides"


class RiskLevel(str, Enum):
    """Transfer risk verdicts, ordered from least to most severe"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    RUN_AWAY = "run_away"

    @property
    def severity(self) -> int:
        return _RISK_ORDER.index(self)

    @classmethod
    def max(cls, *levels: "RiskLevel") -> "RiskLevel":
        return max(levels, key=lambda level: level.severity)


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.RUN_AWAY]


class TransactionFrequency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ADDICTED = "addicted"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class TradeAction(str, Enum):
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class StrategyType(str, Enum):
    GAS_OPTIMIZATION = "gas_optimization"
    NETWORK_TIMING = "network_timing"
    AI_CUSTOM = "ai_custom"
    DCA = "dca"
    MOMENTUM = "momentum"


class StrategyRiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _Record:
    """Serialization shared by all records: enums to strings, tuples to lists."""

    def to_dict(self) -> dict[str, Any]:
        return {k: _plain(getattr(self, k)) for k in self.__dataclass_fields__}


@dataclass(frozen=True)
class GasTier(_Record):
    """Fee oracle quote, integer wei per tier."""
    slow: int
    standard: int
    fast: int
    instant: int
    confidence: float = 1.0

    def __post_init__(self):
        for name in ("slow", "standard", "fast", "instant"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} gas price must be non-negative")
        object.__setattr__(self, "confidence", clamp01(self.confidence))


@dataclass(frozen=True)
class MempoolStats(_Record):
    pending_count: int
    avg_gas_price_wei: int


@dataclass(frozen=True)
class NetworkConditions(_Record):
    gas_price_gwei: float
    congestion: CongestionLevel
    mempool_size: int
    avg_wait_time_seconds: float
    confidence: float

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp01(self.confidence))


@dataclass(frozen=True)
class GasDecision(_Record):
    action: GasAction
    recommended_gas_price_wei: int
    estimated_wait_time_seconds: float
    confidence: float
    reasoning: str
    risk_score: float
    gas_savings_wei: int
    network_factors: tuple[str, ...] = ()


@dataclass(frozen=True)
class TransferRequest(_Record):
    recipient: str
    amount_wei: int

    def __post_init__(self):
        if self.amount_wei < 0:
            raise ValueError("amount_wei must be non-negative")
        if not Web3.is_address(self.recipient):
            raise ValueError(f"invalid recipient address: {self.recipient!r}")


@dataclass(frozen=True)
class BehaviorProfile(_Record):
    """Stored user behaviour. Only the frequency takes part in scoring."""
    transaction_frequency: TransactionFrequency = TransactionFrequency.MEDIUM
    preferred_hours: tuple[int, ...] = (9, 10, 11, 14, 15, 16)
    risk_preference: float = 0.5


@dataclass(frozen=True)
class RiskAssessment(_Record):
    level: RiskLevel
    factors: tuple[str, ...]
    confidence: float
    recommendation_text: str


@dataclass(frozen=True)
class PricePoint(_Record):
    timestamp: int
    price: float


@dataclass(frozen=True)
class TechnicalIndicatorSet(_Record):
    sma: Mapping[int, float]
    ema: Mapping[int, float]
    rsi: float
    macd: float
    bollinger_upper: float
    bollinger_lower: float
    volatility: float
    current_price: float

    def __post_init__(self):
        object.__setattr__(self, "sma", MappingProxyType(dict(self.sma)))
        object.__setattr__(self, "ema", MappingProxyType(dict(self.ema)))


@dataclass(frozen=True)
class TradingDecision(_Record):
    action: TradeAction
    asset: str
    amount: float
    confidence: float
    risk_score: float
    reasoning: str
    factors: tuple[str, ...]


@dataclass(frozen=True)
class LearningSnapshot(_Record):
    total_transactions: int = 0
    confidence_score: float = 0.5
    success_rate: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LearningSnapshot":
        return cls(
            total_transactions=int(data.get("total_transactions", 0)),
            confidence_score=clamp01(data.get("confidence_score", 0.5)),
            success_rate=clamp01(data.get("success_rate", 0.0)),
        )


@dataclass(frozen=True)
class TradeOrder(_Record):
    """Order handed to the execution collaborator after a strategy decision."""
    id: str
    strategy_id: str
    action: TradeAction
    asset: str
    amount: float
    confidence: float
    reasoning: str
    created_at: float


@dataclass
class StrategyPerformance:
    total_trades: int = 0
    successful_trades: int = 0
    total_gas_saved_wei: int = 0
    avg_confirmation_time: float = 0.0
    total_return: float = 0.0


@dataclass
class Strategy:
    """
    Automated strategy owned by the strategy book.

    Attributes:
        parameters: Type-specific settings (asset, amount, thresholds ...)
        max_allocation_percent: Share of capital the strategy may commit
        last_executed_at: Unix seconds of the last completed run, if any
    """
    id: str
    name: str
    description: str
    type: StrategyType
    risk_level: StrategyRiskLevel
    max_allocation_percent: float
    created_at: float
    enabled: bool = False
    parameters: dict[str, Any] = field(default_factory=dict)
    last_executed_at: float | None = None
    performance: StrategyPerformance = field(default_factory=StrategyPerformance)

    def to_dict(self) -> dict[str, Any]:
        return _plain(asdict(self))
