"""Spectrum farm resolver."""

import logging

from ownership_snapshot.core.allocation import allocate
from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.keys import decode_holder_key, namespace_prefix
from ownership_snapshot.core.models import Holding, RewardInfoResponse
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import StateScanner
from ownership_snapshot.protocols.base import BaseSourceResolver

logger = logging.getLogger(__name__)


@ResolverRegistry.register
class SpecFarmResolver(BaseSourceResolver):
    """
    Resolver for LP bonded in a Spectrum auto-compounding farm.

    Holders are discovered from the farm's `reward` map, where the same
    address appears once per reward sub-key. Each distinct holder's
    `reward_info` lines for the target asset are summed and allocated
    against the pair's reserve.

    """

    name = "spec_farm"
    description = "Spectrum farm bonded LP"
    config_section = "spec_farm"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        reserve, total_share = self._target_reserve(context, self.settings.pair)
        target = self.config.target_asset

        holders = self.list_holders(context)
        logger.info("%s: %d distinct holders", self.name, len(holders))

        holdings: list[Holding] = []
        for i, holder in enumerate(holders, start=1):
            rewards = self._query(
                context,
                self.settings.farm,
                {"reward_info": {"staker_addr": holder}},
                RewardInfoResponse,
            )
            bonded = sum(line.bond_amount for line in rewards.reward_infos if line.asset_token == target)
            amount = allocate(bonded, total_share, reserve)
            if amount:
                holdings.append(self._holding(holder, amount))
            if i % 1000 == 0:
                logger.info("%s: fetched %d / %d", self.name, i, len(holders))

        return holdings

    def list_holders(self, context: SnapshotContext) -> list[str]:
        """Distinct holder addresses under the farm's `reward` map, in key order."""
        prefix = namespace_prefix("reward")
        seen: dict[str, None] = {}
        for entry in StateScanner(context.store).iter_prefix(self.settings.farm, prefix):
            with self._entry_errors(entry):
                holder, _ = decode_holder_key(entry.key, len(prefix), hrp=self.config.hrp)
            seen.setdefault(str(holder), None)
        return list(seen)
