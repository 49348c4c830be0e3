"""Tests for the LCD client using a mock HTTP transport."""

import base64
import json

import httpx
import pytest

from ownership_snapshot.core.errors import QueryFailedError
from ownership_snapshot.core.keys import namespace_prefix
from ownership_snapshot.rpc.lcd import HEIGHT_HEADER, LCDClient

LCD_URL = "https://lcd.example.org"
CONTRACT = "terra1vault"


def _model(key: bytes, value: bytes) -> dict:
    return {"key": key.hex(), "value": base64.b64encode(value).decode()}


def _client(handler, **kwargs) -> LCDClient:
    return LCDClient(LCD_URL, transport=httpx.MockTransport(handler), **kwargs)


def test_scan_prefix_paginates_and_stops_past_prefix():
    """Test that state pages are filtered to the prefix and reading stops after it."""
    prefix = namespace_prefix("user")
    before = namespace_prefix("abc")
    inside = [prefix + b"\x01", prefix + b"\x02"]
    after = namespace_prefix("users") + b"\x01"
    pages = {
        None: {"models": [_model(before, b"{}"), _model(inside[0], b"1")], "pagination": {"next_key": "cGFnZTI="}},
        "cGFnZTI=": {"models": [_model(inside[1], b"2"), _model(after, b"3")], "pagination": {"next_key": "cGFnZTM="}},
    }
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/cosmwasm/wasm/v1/contract/{CONTRACT}/state"
        assert request.headers[HEIGHT_HEADER] == "123"
        page_key = request.url.params.get("pagination.key")
        requested.append(page_key)
        return httpx.Response(200, json=pages[page_key])

    with _client(handler, height=123) as client:
        entries = list(client.scan_prefix(CONTRACT, prefix))

    assert [entry.key for entry in entries] == inside
    assert [entry.value for entry in entries] == [b"1", b"2"]
    # the third page is never requested
    assert requested == [None, "cGFnZTI="]


def test_smart_query():
    """Test that the query message is sent base64-encoded in the path."""

    def handler(request: httpx.Request) -> httpx.Response:
        encoded = request.url.path.rsplit("/", 1)[-1]
        msg = json.loads(base64.urlsafe_b64decode(encoded))
        assert msg == {"pool": {}}
        return httpx.Response(200, json={"data": {"total_share": "42"}})

    client = _client(handler)
    assert client.query("terra1pair", {"pool": {}}) == {"total_share": "42"}
    client.close()


def test_no_height_header_when_unpinned():
    """Test that requests carry no height header when no height is given."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert HEIGHT_HEADER not in request.headers
        return httpx.Response(200, json={"data": {}})

    with _client(handler) as client:
        client.query("terra1pair", {"pool": {}})


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"code": 2, "message": "query wasm contract failed"}),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json={"error": "no data"}),
    ],
    ids=["http-error", "invalid-json", "missing-data"],
)
def test_query_failures(response):
    """Test that failed requests raise QueryFailedError."""
    with _client(lambda request: response) as client:
        with pytest.raises(QueryFailedError):
            client.query("terra1pair", {"pool": {}})


def test_transport_error():
    """Test that connection errors raise QueryFailedError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(QueryFailedError):
            list(client.scan_prefix(CONTRACT, namespace_prefix("user")))


def test_is_contract():
    """Test contract classification from contract-info lookups."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/terra1vault"):
            return httpx.Response(200, json={"address": "terra1vault", "contract_info": {}})
        return httpx.Response(404, json={"code": 5, "message": "not found"})

    with _client(handler) as client:
        assert client.is_contract("terra1vault")
        assert not client.is_contract("terra1wallet")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"code": 5, "message": "contract terra1wallet: not found"}),
        httpx.Response(404, text="Not Found"),
    ],
    ids=["grpc-not-found", "plain-404"],
)
def test_is_contract_not_found_variants(response):
    """Test that both not-found forms classify the address as a wallet."""
    with _client(lambda request: response) as client:
        assert not client.is_contract("terra1wallet")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"code": 2, "message": "internal error"}),
        httpx.Response(503, text="upstream unavailable"),
    ],
    ids=["node-error", "unavailable"],
)
def test_is_contract_failures(response):
    """Test that lookup failures other than not-found raise QueryFailedError."""
    with _client(lambda request: response) as client:
        with pytest.raises(QueryFailedError):
            client.is_contract("terra1wallet")


def test_native_ledger():
    """Test validator, delegation, unbonding, and balance enumeration."""
    validator = {"operator_address": "terravaloper1a", "tokens": "1000", "delegator_shares": "500.000000000000000000"}
    routes = {
        "/cosmos/staking/v1beta1/validators": {"validators": [validator], "pagination": {"next_key": None}},
        "/cosmos/staking/v1beta1/validators/terravaloper1a/delegations": {
            "delegation_responses": [
                {
                    "delegation": {
                        "delegator_address": "terra1d",
                        "validator_address": "terravaloper1a",
                        "shares": "50.000000000000000000",
                    },
                    "balance": {"denom": "uluna", "amount": "100"},
                }
            ],
            "pagination": {},
        },
        "/cosmos/staking/v1beta1/validators/terravaloper1a/unbonding_delegations": {
            "unbonding_responses": [
                {
                    "delegator_address": "terra1u",
                    "validator_address": "terravaloper1a",
                    "entries": [{"creation_height": "1", "initial_balance": "9", "balance": "8"}],
                }
            ],
        },
        "/cosmos/bank/v1beta1/denom_owners/uluna": {
            "denom_owners": [{"address": "terra1b", "balance": {"denom": "uluna", "amount": "77"}}],
        },
    }
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=routes[request.url.path])

    with _client(handler, balance_denoms=["uluna"]) as client:
        delegations = list(client.iter_delegations())
        unbondings = list(client.iter_unbonding_delegations())
        balances = list(client.iter_balances())

    assert [(d.delegator_address, d.shares) for d in delegations] == [("terra1d", 50 * 10**18)]
    assert [u.entries[0].balance for u in unbondings] == [8]
    assert [(address, coin.amount) for address, coin in balances] == [("terra1b", 77)]
    # validators are fetched once and reused
    assert calls.count("/cosmos/staking/v1beta1/validators") == 1
