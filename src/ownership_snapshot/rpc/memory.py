"""In-memory chain state implementing every snapshot collaborator interface.

Used to replay exported state dumps offline and as the test double for
resolvers.
"""

import base64
import json
from bisect import bisect_left
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from ownership_snapshot.core.context import StoreEntry
from ownership_snapshot.core.decoder import decode_record
from ownership_snapshot.core.errors import DecodeError, QueryFailedError
from ownership_snapshot.core.models import Coin, Delegation, UnbondingDelegation, Validator


def _canonical(msg: dict[str, Any]) -> str:
    return json.dumps(msg, sort_keys=True, separators=(",", ":"))


def _to_bytes(value: bytes | str | dict | list) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode()
    return json.dumps(value).encode()


class MemoryChainState:
    """
    Contract storage, smart-query responses, and native state held in memory.

    Scans copy the matching key range when they start, so writes made while
    a scan is running are not observed by it.

    Parameters
    ----------
    height : int | None
        Block height the state was taken at

    """

    def __init__(self, height: int | None = None) -> None:
        self.height = height
        self._stores: dict[str, dict[bytes, bytes]] = {}
        self._sorted_keys: dict[str, list[bytes]] = {}
        self._responses: dict[tuple[str, str], Any] = {}
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {}
        self._contracts: set[str] = set()
        self.validators: list[Validator] = []
        self.delegations: list[Delegation] = []
        self.unbonding_delegations: list[UnbondingDelegation] = []
        self.balances: list[tuple[str, Coin]] = []

    def set_entry(self, contract: str, key: bytes, value: bytes | str | dict | list) -> None:
        """Write a raw storage entry; dict and list values are stored as JSON."""
        store = self._stores.setdefault(contract, {})
        store[bytes(key)] = _to_bytes(value)
        self._sorted_keys.pop(contract, None)
        self._contracts.add(contract)

    def set_query_response(self, contract: str, msg: dict[str, Any], response: Any) -> None:
        self._responses[contract, _canonical(msg)] = response
        self._contracts.add(contract)

    def set_query_handler(self, contract: str, handler: Callable[[dict[str, Any]], Any]) -> None:
        self._handlers[contract] = handler
        self._contracts.add(contract)

    def add_contract(self, address: str) -> None:
        self._contracts.add(address)

    def scan_prefix(self, contract: str, prefix: bytes) -> Iterator[StoreEntry]:
        store = self._stores.get(contract)
        if not store:
            return
        keys = self._sorted_keys.get(contract)
        if keys is None:
            keys = sorted(store)
            self._sorted_keys[contract] = keys

        start = bisect_left(keys, prefix)
        matched: list[StoreEntry] = []
        for key in keys[start:]:
            if not key.startswith(prefix):
                break
            matched.append(StoreEntry(key, store[key]))
        yield from matched

    def query(self, contract: str, msg: dict[str, Any]) -> Any:
        """
        Answer a smart query from recorded responses or a registered handler.

        Raises
        ------
        QueryFailedError
            If no response or handler exists for the query

        """
        key = (contract, _canonical(msg))
        if key in self._responses:
            return self._responses[key]
        handler = self._handlers.get(contract)
        if handler is not None:
            return handler(msg)
        error_msg = f"No response recorded for query {_canonical(msg)} on {contract}"
        raise QueryFailedError(error_msg)

    def is_contract(self, address: str) -> bool:
        return address in self._contracts

    def iter_validators(self) -> Iterator[Validator]:
        yield from self.validators

    def iter_delegations(self) -> Iterator[Delegation]:
        yield from self.delegations

    def iter_unbonding_delegations(self) -> Iterator[UnbondingDelegation]:
        yield from self.unbonding_delegations

    def iter_balances(self) -> Iterator[tuple[str, Coin]]:
        yield from self.balances


def load_state_file(path: Path | str) -> MemoryChainState:
    """
    Load a JSON state dump into memory.

    The dump has the shape::

        {
          "height": 7544910,
          "contracts": {
            "<address>": {
              "state": [{"key": "<hex>", "value": "<base64>"}],
              "queries": [{"msg": {...}, "response": ...}]
            }
          },
          "validators": [...],
          "delegations": [...],
          "unbonding_delegations": [...],
          "balances": [{"address": "...", "coins": [{"denom": "...", "amount": "..."}]}]
        }

    Contract state models use the same key/value encoding as the
    `/cosmwasm/wasm/v1/contract/{address}/state` endpoint.

    Parameters
    ----------
    path : Path | str
        Path to the dump

    Returns
    -------
    MemoryChainState
        Loaded chain state

    Raises
    ------
    DecodeError
        If the dump is malformed

    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            msg = f"State file {path} is not valid JSON: {e}"
            raise DecodeError(msg) from e

    state = MemoryChainState(height=data.get("height"))
    try:
        for contract, contract_data in data.get("contracts", {}).items():
            state.add_contract(contract)
            for model in contract_data.get("state", []):
                state.set_entry(contract, bytes.fromhex(model["key"]), base64.b64decode(model["value"]))
            for recorded in contract_data.get("queries", []):
                state.set_query_response(contract, recorded["msg"], recorded["response"])
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Malformed contract state in {path}: {e}"
        raise DecodeError(msg) from e

    state.validators = [decode_record(item, Validator) for item in data.get("validators", [])]
    state.delegations = [decode_record(item, Delegation) for item in data.get("delegations", [])]
    state.unbonding_delegations = [
        decode_record(item, UnbondingDelegation) for item in data.get("unbonding_delegations", [])
    ]
    state.balances = [
        (account["address"], decode_record(coin, Coin))
        for account in data.get("balances", [])
        for coin in account.get("coins", [])
    ]
    return state
