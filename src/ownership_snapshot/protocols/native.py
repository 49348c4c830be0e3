"""Native staking and bank balance resolver."""

import logging

from ownership_snapshot.core.allocation import allocate
from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.errors import QueryFailedError
from ownership_snapshot.core.models import Holding
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.protocols.base import BaseSourceResolver

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10_000


@ResolverRegistry.register
class NativeResolver(BaseSourceResolver):
    """
    Resolver for natively bonded, unbonding, and liquid balances.

    No proportional pooling is involved beyond the validator exchange rate:
    a delegation's tokens are `shares * validator.tokens // validator.delegator_shares`,
    with shares handled as 18-decimal fixed-point integers. Unbonding entries
    and bank balances are already denominated in their asset.

    """

    name = "native"
    description = "Native delegations, unbondings, and bank balances"
    config_section = "native"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        native = context.native
        if native is None:
            msg = "Native ledger is not available in this snapshot context"
            raise QueryFailedError(msg)

        return [
            *self.bonded_holdings(context),
            *self.balance_holdings(context),
        ]

    def bonded_holdings(self, context: SnapshotContext) -> list[Holding]:
        """
        Holdings of the bond denom from delegations and unbonding entries.

        Delegations to validators missing from the validator set are skipped.

        """
        native = context.native
        bond_denom = self.settings.bond_denom
        excluded = set(self.settings.excluded_delegators)
        validators = {validator.operator_address: validator for validator in native.iter_validators()}

        holdings: list[Holding] = []
        for unbonding in native.iter_unbonding_delegations():
            if unbonding.delegator_address in excluded:
                continue
            for entry in unbonding.entries:
                if entry.balance:
                    holdings.append(self._holding(unbonding.delegator_address, entry.balance, denom=bond_denom))

        count = 0
        for delegation in native.iter_delegations():
            if delegation.delegator_address in excluded:
                continue
            count += 1
            if count % PROGRESS_EVERY == 0:
                logger.info("%s: iterating delegations.. %d", self.name, count)

            validator = validators.get(delegation.validator_address)
            if validator is None:
                logger.debug("Skipping delegation to unknown validator %s", delegation.validator_address)
                continue
            amount = allocate(delegation.shares, validator.delegator_shares, validator.tokens)
            if amount:
                holdings.append(self._holding(delegation.delegator_address, amount, denom=bond_denom))

        return holdings

    def balance_holdings(self, context: SnapshotContext) -> list[Holding]:
        """Non-zero bank balances in the allowed denominations."""
        allowed = set(self.settings.balance_denoms)
        holdings: list[Holding] = []
        count = 0
        for address, coin in context.native.iter_balances():
            count += 1
            if count % PROGRESS_EVERY == 0:
                logger.info("%s: iterating balances.. %d", self.name, count)
            if coin.amount and coin.denom in allowed:
                holdings.append(self._holding(address, coin.amount, denom=coin.denom))
        return holdings

    def blacklist_entries(self) -> dict[str, list[str]]:
        if not self.settings.module_accounts:
            return {}
        return {self.settings.bond_denom: list(self.settings.module_accounts)}
