"""Interfaces of the chain collaborators a snapshot run reads from."""

from collections.abc import Iterable
from typing import Any, NamedTuple, Protocol

from ownership_snapshot.core.models import Coin, Delegation, UnbondingDelegation, Validator


class StoreEntry(NamedTuple):
    """Raw key-value pair from a contract's storage."""

    key: bytes
    value: bytes


class StoreView(Protocol):
    """
    Read-only view of contract storage pinned to one block height.

    Methods
    -------
    scan_prefix(contract, prefix)
        Entries whose key starts with `prefix`, ordered by raw key bytes

    """

    def scan_prefix(self, contract: str, prefix: bytes) -> Iterable[StoreEntry]: ...


class QueryExecutor(Protocol):
    """Synchronous smart-query access to contracts at the same height."""

    def query(self, contract: str, msg: dict[str, Any]) -> Any: ...


class AddressClassifier(Protocol):
    """Tells contract addresses apart from externally owned accounts."""

    def is_contract(self, address: str) -> bool: ...


class NativeLedger(Protocol):
    """Native staking and bank state at the pinned height."""

    def iter_validators(self) -> Iterable[Validator]: ...

    def iter_delegations(self) -> Iterable[Delegation]: ...

    def iter_unbonding_delegations(self) -> Iterable[UnbondingDelegation]: ...

    def iter_balances(self) -> Iterable[tuple[str, Coin]]: ...


class SnapshotContext:
    """
    Everything a source resolver may read during one run.

    Parameters
    ----------
    store : StoreView
        Contract storage view
    querier : QueryExecutor
        Contract smart-query executor
    classifier : AddressClassifier | None
        Address classifier used to annotate holdings
    native : NativeLedger | None
        Native staking and bank state, required only by the native resolver
    height : int | None
        Block height all collaborators are pinned to

    """

    def __init__(
        self,
        store: StoreView,
        querier: QueryExecutor,
        classifier: AddressClassifier | None = None,
        native: NativeLedger | None = None,
        height: int | None = None,
    ) -> None:
        self.store = store
        self.querier = querier
        self.classifier = classifier
        self.native = native
        self.height = height

    @classmethod
    def from_chain(cls, chain: Any, height: int | None = None) -> "SnapshotContext":
        """Build a context from one object implementing every collaborator interface."""
        return cls(store=chain, querier=chain, classifier=chain, native=chain, height=height)
