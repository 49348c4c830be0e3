"""Terra LCD (REST) client pinned to a single block height."""

import base64
import json
import logging
from collections.abc import Iterator
from typing import Any

import httpx

from ownership_snapshot.core.context import StoreEntry
from ownership_snapshot.core.decoder import decode_record
from ownership_snapshot.core.errors import QueryFailedError
from ownership_snapshot.core.models import Coin, Delegation, UnbondingDelegation, Validator

logger = logging.getLogger(__name__)

HEIGHT_HEADER = "x-cosmos-block-height"
GRPC_NOT_FOUND = 5


class LCDClient:
    """
    Client for the Cosmos SDK / CosmWasm LCD endpoints.

    Implements the store view, query executor, address classifier, and native
    ledger interfaces. Every request carries the `x-cosmos-block-height`
    header, so all reads observe the same committed state.

    Parameters
    ----------
    base_url : str
        LCD base URL
    height : int | None
        Block height to pin reads to; latest when None
    balance_denoms : list[str] | None
        Denominations enumerated by `iter_balances`
    timeout : float
        Request timeout in seconds
    page_limit : int
        Page size for paginated endpoints
    transport : httpx.BaseTransport | None
        Custom transport, mainly for testing

    """

    def __init__(
        self,
        base_url: str,
        height: int | None = None,
        balance_denoms: list[str] | None = None,
        timeout: float = 30.0,
        page_limit: int = 1000,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.height = height
        self.balance_denoms = balance_denoms or []
        self.page_limit = page_limit
        headers = {HEIGHT_HEADER: str(height)} if height is not None else {}
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self._validators: list[Validator] | None = None

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = self.client.get(path, params=params)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            msg = f"Request timeout for {path}: {e}"
            raise QueryFailedError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code} for {path}: {e.response.text}"
            raise QueryFailedError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed for {path}: {e}"
            raise QueryFailedError(msg) from e
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON response for {path}: {e}"
            raise QueryFailedError(msg) from e

    def _paginate(self, path: str, field: str) -> Iterator[dict[str, Any]]:
        """Yield items of `field` across every page of a paginated endpoint."""
        next_key: str | None = None
        while True:
            params: dict[str, Any] = {"pagination.limit": self.page_limit}
            if next_key:
                params["pagination.key"] = next_key
            data = self._get(path, params=params)
            yield from data.get(field) or []

            next_key = (data.get("pagination") or {}).get("next_key")
            if not next_key:
                break

    def scan_prefix(self, contract: str, prefix: bytes) -> Iterator[StoreEntry]:
        """
        Entries of a contract's raw storage whose key starts with `prefix`.

        The state endpoint returns the full keyspace in ascending key order,
        so pages are consumed until the first key past the prefix range.

        Parameters
        ----------
        contract : str
            Contract address
        prefix : bytes
            Raw key prefix

        Yields
        ------
        StoreEntry
            Matching entries in key order

        """
        for model in self._paginate(f"/cosmwasm/wasm/v1/contract/{contract}/state", "models"):
            key = bytes.fromhex(model["key"])
            if key < prefix:
                continue
            if not key.startswith(prefix):
                break
            yield StoreEntry(key, base64.b64decode(model["value"]))

    def query(self, contract: str, msg: dict[str, Any]) -> Any:
        """
        Execute a smart query.

        Parameters
        ----------
        contract : str
            Contract address
        msg : dict[str, Any]
            Query message

        Returns
        -------
        Any
            The `data` field of the response

        Raises
        ------
        QueryFailedError
            If the request fails

        """
        # URL-safe alphabet; the encoded message is a path segment
        encoded = base64.urlsafe_b64encode(json.dumps(msg, separators=(",", ":")).encode()).decode()
        data = self._get(f"/cosmwasm/wasm/v1/contract/{contract}/smart/{encoded}")
        if "data" not in data:
            error_msg = f"Smart query on {contract} returned no data"
            raise QueryFailedError(error_msg)
        return data["data"]

    def is_contract(self, address: str) -> bool:
        """
        True when contract info exists for the address.

        Raises
        ------
        QueryFailedError
            If the lookup fails for any reason other than the contract not existing

        """
        path = f"/cosmwasm/wasm/v1/contract/{address}"
        try:
            response = self.client.get(path)
        except httpx.HTTPError as e:
            msg = f"HTTP request failed for contract info of {address}: {e}"
            raise QueryFailedError(msg) from e

        if response.is_success:
            return True
        if response.status_code == httpx.codes.NOT_FOUND or _is_not_found(response):
            return False
        msg = f"HTTP error {response.status_code} for {path}: {response.text}"
        raise QueryFailedError(msg)

    def iter_validators(self) -> Iterator[Validator]:
        if self._validators is None:
            self._validators = [
                decode_record(item, Validator)
                for item in self._paginate("/cosmos/staking/v1beta1/validators", "validators")
            ]
            logger.debug("Loaded %d validators", len(self._validators))
        yield from self._validators

    def iter_delegations(self) -> Iterator[Delegation]:
        for validator in self.iter_validators():
            path = f"/cosmos/staking/v1beta1/validators/{validator.operator_address}/delegations"
            for item in self._paginate(path, "delegation_responses"):
                yield decode_record(item["delegation"], Delegation)

    def iter_unbonding_delegations(self) -> Iterator[UnbondingDelegation]:
        for validator in self.iter_validators():
            path = f"/cosmos/staking/v1beta1/validators/{validator.operator_address}/unbonding_delegations"
            for item in self._paginate(path, "unbonding_responses"):
                yield decode_record(item, UnbondingDelegation)

    def iter_balances(self) -> Iterator[tuple[str, Coin]]:
        """Balances of every holder of the configured denominations."""
        for denom in self.balance_denoms:
            for item in self._paginate(f"/cosmos/bank/v1beta1/denom_owners/{denom}", "denom_owners"):
                yield item["address"], decode_record(item["balance"], Coin)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "LCDClient":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: object | None,
    ) -> None:
        """Context manager exit."""
        self.close()


def _is_not_found(response: httpx.Response) -> bool:
    """True for a gRPC-gateway NotFound error body (code 5)."""
    try:
        body = response.json()
    except json.JSONDecodeError:
        return False
    return isinstance(body, dict) and body.get("code") == GRPC_NOT_FOUND
