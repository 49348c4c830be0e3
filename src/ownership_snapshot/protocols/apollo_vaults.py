"""Apollo staking vault resolver."""

import logging

from ownership_snapshot.core.allocation import allocate
from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.decoder import DecodeMode, decode, decode_record
from ownership_snapshot.core.errors import AddressNotFoundError, DecodeError
from ownership_snapshot.core.keys import decode_trailing_address, namespace_prefix
from ownership_snapshot.core.models import (
    Address,
    HolderShare,
    Holding,
    StrategyConfig,
    StrategyEntry,
    StrategyTotals,
)
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import StateScanner
from ownership_snapshot.protocols.base import BaseSourceResolver

logger = logging.getLogger(__name__)


@ResolverRegistry.register
class ApolloVaultsResolver(BaseSourceResolver):
    """
    Resolver for LP shares held in Apollo vault strategies.

    Each strategy holds a bonded LP amount and issues shares to users. A
    holder's LP entitlement is `shares * total_bond_amount // total_shares`.
    Holdings are reported in the strategy's LP token, or in the target asset
    for strategies configured with a pricing pair.

    """

    name = "apollo_vaults"
    description = "Apollo vault strategies (LP shares)"
    config_section = "apollo_vaults"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        scanner = StateScanner(context.store)
        strategies = self.list_strategies(scanner)
        logger.info("%s: %d strategies", self.name, len(strategies))

        holdings: list[Holding] = []
        for strategy in strategies:
            lp_token, lp_holdings = self.lp_holdings(scanner, strategy)

            pair = self.settings.priced_strategies.get(strategy)
            if pair is None:
                holdings.extend(
                    self._holding(holder, amount, denom=lp_token) for holder, amount in lp_holdings.items() if amount
                )
                continue

            reserve, total_share = self._target_reserve(context, pair)
            for holder, lp_amount in lp_holdings.items():
                amount = allocate(lp_amount, total_share, reserve)
                if amount:
                    holdings.append(self._holding(holder, amount))

        return holdings

    def list_strategies(self, scanner: StateScanner) -> list[str]:
        """
        Enumerate strategy contracts registered in the factory.

        Entries that cannot be parsed are skipped: leaving out one strategy
        reference cannot corrupt another strategy's totals.

        Parameters
        ----------
        scanner : StateScanner
            Scanner over the pinned store view

        Returns
        -------
        list[str]
            Strategy addresses in factory order, followed by configured extras

        """
        strategies: list[str] = []
        for entry in scanner.iter_prefix(self.settings.factory, namespace_prefix("strategies")):
            try:
                record = decode(entry.value, StrategyEntry, DecodeMode.PLAIN)
                address = Address.from_base64(record["address"] or "", self.config.hrp)
            except (DecodeError, AddressNotFoundError) as e:
                logger.debug("Skipping strategy entry %s: %s", entry.key.hex(), e)
                continue
            strategies.append(str(address))

        for extra in self.settings.strategies:
            if extra not in strategies:
                strategies.append(extra)
        return strategies

    def lp_holdings(self, scanner: StateScanner, strategy: str) -> tuple[str, dict[str, int]]:
        """
        Compute each holder's LP entitlement in one strategy.

        Parameters
        ----------
        scanner : StateScanner
            Scanner over the pinned store view
        strategy : str
            Strategy contract address

        Returns
        -------
        tuple[str, dict[str, int]]
            LP token address and holder -> LP amount

        """
        policy = self.config.singleton_policy
        strategy_config = scanner.scan_single(strategy, namespace_prefix("config"), StrategyConfig, policy)
        totals = scanner.scan_single(strategy, namespace_prefix("strategy"), StrategyTotals, policy)
        lp_token = str(strategy_config.lp_token_address(self.config.hrp))

        prefix = namespace_prefix("user")
        lp_holdings: dict[str, int] = {}
        for entry in scanner.iter_prefix(strategy, prefix):
            with self._entry_errors(entry):
                share = decode_record(entry.value, HolderShare)
                if share.shares == 0:
                    continue
                holder = str(decode_trailing_address(entry.key, len(prefix), hrp=self.config.hrp))
            lp_holdings[holder] = allocate(share.shares, totals.total_shares, totals.total_bond_amount)

        logger.debug("%s: strategy %s has %d holders of %s", self.name, strategy, len(lp_holdings), lp_token)
        return lp_token, lp_holdings
