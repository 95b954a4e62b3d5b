from typing import Literal

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

from tempest_core.types import RiskTolerance

logger = structlog.get_logger(__name__)

ONE_ETH_WEI = 10**18


class Settings(BaseSettings):
    # Gas oracle / mempool service
    tempest_api_url: str = "http://localhost:3001/api/v1"
    tempest_api_key: str = ""
    api_timeout_seconds: float = 10.0
    cache_ttl_seconds: float = 30.0

    # Personality
    personality: RiskTolerance = RiskTolerance.MODERATE

    # Transfer limits (wei)
    per_transaction_limit_wei: int = 5 * ONE_ETH_WEI
    large_transfer_threshold_wei: int = ONE_ETH_WEI
    unusual_transfer_threshold_wei: int = ONE_ETH_WEI // 2
    network_risk_threshold: float = 0.8
    whitelisted_addresses: list[str] = []

    # Reputation lookups
    reputation_failure_mode: Literal["fail_closed", "fail_open"] = "fail_closed"
    denied_addresses: list[str] = []

    # Feedback loop
    learning_step: float = 0.1

    # Strategy scheduling
    strategy_cooldown_seconds: float = 120.0

    # Algorithm parameters (None = packaged parameters.yaml)
    parameters_path: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="TEMPEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def _redact_settings(d: dict) -> dict:
    redacted = dict(d)
    for k in ("tempest_api_key",):
        if k in redacted and redacted[k]:
            redacted[k] = "***REDACTED***"
    return redacted


settings = Settings()
logger.debug("settings", settings=_redact_settings(settings.model_dump()))
