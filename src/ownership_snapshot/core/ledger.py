"""Additive per-address, per-denomination balance ledger."""

from collections.abc import Iterable

from ownership_snapshot.core.models import BalanceEntry, Holding


class SnapshotLedger:
    """
    Mapping of address -> denom -> amount where contributions add up.

    Merging is commutative and associative, so partial ledgers from
    independent resolvers can be combined in any order. Zero amounts are not
    recorded.

    """

    def __init__(self) -> None:
        self._balances: dict[str, dict[str, int]] = {}

    def add(self, address: str, denom: str, amount: int) -> None:
        """
        Add `amount` of `denom` to the balance of `address`.

        Raises
        ------
        ValueError
            If the amount is negative

        """
        if amount < 0:
            msg = f"Negative amount {amount} of {denom} for {address}"
            raise ValueError(msg)
        if amount == 0:
            return
        denoms = self._balances.setdefault(address, {})
        denoms[denom] = denoms.get(denom, 0) + amount

    def add_holdings(self, holdings: Iterable[Holding]) -> None:
        for holding in holdings:
            self.add(holding.address, holding.denom, holding.amount)

    def update(self, other: "SnapshotLedger") -> None:
        """Merge another ledger into this one in place."""
        for address, denoms in other._balances.items():
            for denom, amount in denoms.items():
                self.add(address, denom, amount)

    def merge(self, other: "SnapshotLedger") -> "SnapshotLedger":
        """Return a new ledger holding the sum of this ledger and `other`."""
        merged = SnapshotLedger()
        merged.update(self)
        merged.update(other)
        return merged

    def remove(self, address: str, denom: str) -> int:
        """Drop one balance entry, returning the amount removed."""
        denoms = self._balances.get(address)
        if not denoms or denom not in denoms:
            return 0
        amount = denoms.pop(denom)
        if not denoms:
            del self._balances[address]
        return amount

    def balance(self, address: str, denom: str) -> int:
        return self._balances.get(address, {}).get(denom, 0)

    def balances(self, address: str) -> list[BalanceEntry]:
        return [BalanceEntry(denom=denom, amount=amount) for denom, amount in self._balances.get(address, {}).items()]

    def addresses(self) -> list[str]:
        return list(self._balances)

    def total(self, denom: str) -> int:
        return sum(denoms.get(denom, 0) for denoms in self._balances.values())

    def to_dict(self) -> dict[str, list[BalanceEntry]]:
        return {address: self.balances(address) for address in self._balances}

    def __len__(self) -> int:
        return len(self._balances)

    def __contains__(self, address: object) -> bool:
        return address in self._balances

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SnapshotLedger):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"SnapshotLedger(addresses={len(self._balances)})"


class Blacklist:
    """
    Addresses whose balance of a denom must not appear in the snapshot.

    Used for module accounts such as the bonding and unbonding pools, whose
    balances are already attributed to delegators.

    """

    def __init__(self, entries: dict[str, Iterable[str]] | None = None) -> None:
        self._entries: dict[str, set[str]] = {}
        for denom, addresses in (entries or {}).items():
            for address in addresses:
                self.register(denom, address)

    def register(self, denom: str, address: str) -> None:
        self._entries.setdefault(denom, set()).add(address)

    def contains(self, denom: str, address: str) -> bool:
        return address in self._entries.get(denom, set())

    def apply(self, ledger: SnapshotLedger) -> int:
        """
        Remove blacklisted balances from `ledger`.

        Returns
        -------
        int
            Number of balance entries removed

        """
        removed = 0
        for denom, addresses in self._entries.items():
            for address in addresses:
                if ledger.remove(address, denom):
                    removed += 1
        return removed

    def __len__(self) -> int:
        return sum(len(addresses) for addresses in self._entries.values())
