from unittest.mock import MagicMock

import pytest
import requests

from tempest_core.errors import ExternalDataUnavailable
from tempest_core.market_data.tempest_api import TempestAPI
from tempest_core.types import GasTier, MempoolStats

from conftest import GWEI

GAS_BODY = {
    "success": True,
    "data": {
        "slow": 10 * GWEI,
        "standard": 25 * GWEI,
        "fast": 60 * GWEI,
        "instant": 80 * GWEI,
        "confidence": 0.9,
    },
}
MEMPOOL_BODY = {"success": True, "data": {"pendingCount": 1234, "avgGasPrice": 20 * GWEI}}


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def response(body):
    r = MagicMock()
    r.json.return_value = body
    return r


def make_api(*bodies, clock=None):
    session = MagicMock()
    session.get.side_effect = [response(b) for b in bodies]
    api = TempestAPI(
        base_url="http://oracle.test/api/v1/",
        timeout=5,
        cache_ttl=30,
        api_key="",
        session=session,
        clock=clock or FakeClock(),
    )
    return api, session


def test_gas_tier_parsed():
    api, session = make_api(GAS_BODY)

    tier = api.get_gas_tier()

    assert tier == GasTier(slow=10 * GWEI, standard=25 * GWEI, fast=60 * GWEI, instant=80 * GWEI, confidence=0.9)
    session.get.assert_called_once_with("http://oracle.test/api/v1/gas/optimal", timeout=5)


def test_mempool_stats_parsed():
    api, session = make_api(MEMPOOL_BODY)

    assert api.get_mempool_stats() == MempoolStats(pending_count=1234, avg_gas_price_wei=20 * GWEI)
    session.get.assert_called_once_with("http://oracle.test/api/v1/mempool/stats", timeout=5)


def test_responses_cached_within_ttl():
    clock = FakeClock()
    api, session = make_api(GAS_BODY, GAS_BODY, clock=clock)

    api.get_gas_tier()
    clock.now = 29.0
    api.get_gas_tier()
    assert session.get.call_count == 1

    clock.now = 30.0
    api.get_gas_tier()
    assert session.get.call_count == 2


def test_clear_cache_forces_refetch():
    api, session = make_api(GAS_BODY, GAS_BODY)

    api.get_gas_tier()
    api.clear_cache()
    api.get_gas_tier()

    assert session.get.call_count == 2


def test_connection_error_is_external_data_unavailable():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("refused")
    api = TempestAPI(base_url="http://oracle.test", api_key="", session=session)

    with pytest.raises(ExternalDataUnavailable):
        api.get_gas_tier()


def test_http_error_is_external_data_unavailable():
    r = response(GAS_BODY)
    r.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    session = MagicMock()
    session.get.return_value = r
    api = TempestAPI(base_url="http://oracle.test", api_key="", session=session)

    with pytest.raises(ExternalDataUnavailable):
        api.get_gas_tier()


def test_invalid_json_is_external_data_unavailable():
    r = MagicMock()
    r.json.side_effect = ValueError("Expecting value")
    session = MagicMock()
    session.get.return_value = r
    api = TempestAPI(base_url="http://oracle.test", api_key="", session=session)

    with pytest.raises(ExternalDataUnavailable):
        api.get_mempool_stats()


def test_unsuccessful_envelope_is_not_cached():
    api, session = make_api({"success": False, "error": "oracle down"}, GAS_BODY)

    with pytest.raises(ExternalDataUnavailable, match="oracle down"):
        api.get_gas_tier()

    assert api.get_gas_tier().standard == 25 * GWEI
    assert session.get.call_count == 2


@pytest.mark.parametrize("missing", ["slow", "standard", "fast", "instant", "confidence"])
def test_incomplete_gas_quote_rejected(missing):
    data = {k: v for k, v in GAS_BODY["data"].items() if k != missing}
    api, _ = make_api({"success": True, "data": data})

    with pytest.raises(ExternalDataUnavailable):
        api.get_gas_tier()


def test_negative_gas_price_rejected():
    data = dict(GAS_BODY["data"], slow=-1)
    api, _ = make_api({"success": True, "data": data})

    with pytest.raises(ExternalDataUnavailable):
        api.get_gas_tier()


def test_incomplete_mempool_stats_rejected():
    api, _ = make_api({"success": True, "data": {"pendingCount": 10}})

    with pytest.raises(ExternalDataUnavailable):
        api.get_mempool_stats()


def test_api_key_sent_as_header():
    session = MagicMock()
    session.headers = {}
    TempestAPI(base_url="http://oracle.test", api_key="secret", session=session)

    assert session.headers["X-API-Key"] == "secret"


def test_invalid_gas_quote_is_not_cached():
    incomplete = {"success": True, "data": {"slow": 10 * GWEI}}
    api, session = make_api(incomplete, GAS_BODY)

    with pytest.raises(ExternalDataUnavailable):
        api.get_gas_tier()

    assert api.get_gas_tier().standard == 25 * GWEI
    assert session.get.call_count == 2


def test_invalid_mempool_stats_are_not_cached():
    api, session = make_api({"success": True, "data": {"pendingCount": 10}}, MEMPOOL_BODY)

    with pytest.raises(ExternalDataUnavailable):
        api.get_mempool_stats()

    assert api.get_mempool_stats().pending_count == 1234
    assert session.get.call_count == 2
