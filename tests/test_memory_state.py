"""Tests for the in-memory chain state and state dump loading."""

import base64
import json

import pytest

from ownership_snapshot.core.errors import DecodeError, QueryFailedError
from ownership_snapshot.core.keys import namespace_prefix
from ownership_snapshot.rpc.memory import MemoryChainState, load_state_file


def test_query_responses_and_handlers():
    """Test recorded responses take precedence over contract handlers."""
    state = MemoryChainState()
    state.set_query_response("terra1pair", {"pool": {}}, {"total_share": "1"})
    state.set_query_handler("terra1pair", lambda msg: {"handled": list(msg)})

    assert state.query("terra1pair", {"pool": {}}) == {"total_share": "1"}
    assert state.query("terra1pair", {"simulation": {}}) == {"handled": ["simulation"]}
    with pytest.raises(QueryFailedError):
        state.query("terra1other", {"pool": {}})


def test_contract_classification():
    """Test that contracts are known from stored state, queries, or explicit registration."""
    state = MemoryChainState()
    state.set_entry("terra1vault", namespace_prefix("config"), {})
    state.add_contract("terra1factory")

    assert state.is_contract("terra1vault")
    assert state.is_contract("terra1factory")
    assert not state.is_contract("terra1wallet")


def test_load_state_file(tmp_path):
    """Test loading contract storage, recorded queries, and native state from a dump."""
    key = namespace_prefix("user") + b"\x01" * 20
    dump = {
        "height": 123,
        "contracts": {
            "terra1vault": {
                "state": [
                    {"key": key.hex(), "value": base64.b64encode(b'{"shares":"5"}').decode()},
                ],
                "queries": [{"msg": {"state": {}}, "response": {"total_shares": "5"}}],
            }
        },
        "validators": [
            {"operator_address": "terravaloper1a", "tokens": "100", "delegator_shares": "100.0"},
        ],
        "delegations": [
            {"delegator_address": "terra1d", "validator_address": "terravaloper1a", "shares": "10.0"},
        ],
        "unbonding_delegations": [
            {"delegator_address": "terra1u", "validator_address": "terravaloper1a", "entries": [{"balance": "3"}]},
        ],
        "balances": [
            {"address": "terra1b", "coins": [{"denom": "uluna", "amount": "7"}, {"denom": "uusd", "amount": "8"}]},
        ],
    }
    path = tmp_path / "state.json"
    path.write_text(json.dumps(dump), encoding="utf-8")

    state = load_state_file(path)

    assert state.height == 123
    assert [entry.key for entry in state.scan_prefix("terra1vault", namespace_prefix("user"))] == [key]
    assert state.query("terra1vault", {"state": {}}) == {"total_shares": "5"}
    assert [v.delegator_shares for v in state.iter_validators()] == [100 * 10**18]
    assert [d.shares for d in state.iter_delegations()] == [10 * 10**18]
    assert [u.entries[0].balance for u in state.iter_unbonding_delegations()] == [3]
    assert [(address, coin.denom, coin.amount) for address, coin in state.iter_balances()] == [
        ("terra1b", "uluna", 7),
        ("terra1b", "uusd", 8),
    ]


def test_load_state_file_errors(tmp_path):
    """Test that malformed dumps raise DecodeError."""
    not_json = tmp_path / "broken.json"
    not_json.write_text("{", encoding="utf-8")
    with pytest.raises(DecodeError):
        load_state_file(not_json)

    bad_key = tmp_path / "bad_key.json"
    bad_key.write_text(json.dumps({"contracts": {"terra1x": {"state": [{"key": "zz", "value": ""}]}}}), encoding="utf-8")
    with pytest.raises(DecodeError):
        load_state_file(bad_key)
