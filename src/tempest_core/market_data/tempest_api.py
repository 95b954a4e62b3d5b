"""
Read-only client for the Tempest gas oracle / mempool service.

Payloads are validated and converted into immutable snapshots. Any transport
error, non-success envelope or incomplete payload raises
ExternalDataUnavailable; nothing is ever filled in with made-up numbers.
"""
from __future__ import annotations

import time
from typing import Any, Callable

import requests
import structlog
from pydantic import BaseModel, Field, ValidationError

from tempest_core.errors import ExternalDataUnavailable
from tempest_core.settings import settings
from tempest_core.types import GasTier, MempoolStats

logger = structlog.get_logger(__name__)


class GasPayload(BaseModel):
    slow: int = Field(..., ge=0)
    standard: int = Field(..., ge=0)
    fast: int = Field(..., ge=0)
    instant: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)


class MempoolPayload(BaseModel):
    pendingCount: int = Field(..., ge=0)
    avgGasPrice: int = Field(..., ge=0)


class TempestAPI:
    """
    HTTP adapter implementing the GasOracle and MempoolSource ports.

    Successful responses are cached per endpoint for `cache_ttl` seconds;
    failures are never cached.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        cache_ttl: float | None = None,
        api_key: str | None = None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = (base_url or settings.tempest_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.cache_ttl_seconds
        self.session = session or requests.Session()
        api_key = settings.tempest_api_key if api_key is None else api_key
        if api_key:
            self.session.headers["X-API-Key"] = api_key
        self._clock = clock
        self._cache: dict[str, tuple[float, Any]] = {}
        self.logger = logger.bind(service="tempest_api")

    def _get(self, endpoint: str, parse: Callable[[Any], Any]) -> Any:
        """Fetch, unwrap and parse an endpoint; only parsed snapshots are cached."""
        cached = self._cache.get(endpoint)
        now = self._clock()
        if cached and now - cached[0] < self.cache_ttl:
            return cached[1]

        url = f"{self.base_url}{endpoint}"
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.error("tempest_request_failed", endpoint=endpoint, error=str(e))
            raise ExternalDataUnavailable(f"Tempest API request failed for {endpoint}: {e}") from e

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error", "unknown error") if isinstance(body, dict) else "malformed body"
            self.logger.error("tempest_request_unsuccessful", endpoint=endpoint, error=error)
            raise ExternalDataUnavailable(f"Tempest API failed for {endpoint}: {error}")

        snapshot = parse(body.get("data"))
        self._cache[endpoint] = (now, snapshot)
        return snapshot

    def get_gas_tier(self) -> GasTier:
        return self._get("/gas/optimal", self._parse_gas_tier)

    def get_mempool_stats(self) -> MempoolStats:
        return self._get("/mempool/stats", self._parse_mempool_stats)

    def _parse_gas_tier(self, data: Any) -> GasTier:
        try:
            payload = GasPayload.model_validate(data)
        except ValidationError as e:
            self.logger.error("tempest_payload_invalid", endpoint="/gas/optimal", error=str(e))
            raise ExternalDataUnavailable(f"incomplete gas quote: {e}") from e
        return GasTier(**payload.model_dump())

    def _parse_mempool_stats(self, data: Any) -> MempoolStats:
        try:
            payload = MempoolPayload.model_validate(data)
        except ValidationError as e:
            self.logger.error("tempest_payload_invalid", endpoint="/mempool/stats", error=str(e))
            raise ExternalDataUnavailable(f"incomplete mempool stats: {e}") from e
        return MempoolStats(pending_count=payload.pendingCount, avg_gas_price_wei=payload.avgGasPrice)

    def clear_cache(self) -> None:
        self._cache.clear()
