"""Apollo vault pending reward resolver."""

import logging

from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.errors import MalformedKeyError
from ownership_snapshot.core.keys import decode_holder_key, namespace_prefix
from ownership_snapshot.core.models import Holding, StakerInfo
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import StateScanner
from ownership_snapshot.protocols.base import BaseSourceResolver

logger = logging.getLogger(__name__)


@ResolverRegistry.register
class ApolloRewardsResolver(BaseSourceResolver):
    """
    Resolver for rewards pending in the Apollo vault factory.

    Every `lm_rewards` key names a staker and a strategy id. The factory is
    queried for each pair and non-zero pending rewards are summed per
    staker, in the reward token.

    """

    name = "apollo_rewards"
    description = "Apollo factory pending liquidity-mining rewards"
    config_section = "apollo_rewards"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        factory = self.settings.factory
        denom = self.settings.reward_denom or self.config.target_asset

        prefix = namespace_prefix("lm_rewards")
        stakes: list[tuple[str, int]] = []
        for entry in StateScanner(context.store).iter_prefix(factory, prefix):
            with self._entry_errors(entry):
                staker, remainder = decode_holder_key(entry.key, len(prefix), hrp=self.config.hrp)
                stakes.append((str(staker), _strategy_id(remainder)))
        logger.info("%s: %d staker keys", self.name, len(stakes))

        pending: dict[str, int] = {}
        total = 0
        for i, (staker, strategy_id) in enumerate(stakes, start=1):
            info = self._query(
                context,
                factory,
                {"get_staker_info": {"staker": staker, "strategy_id": strategy_id}},
                StakerInfo,
            )
            if info.pending_reward:
                pending[staker] = pending.get(staker, 0) + info.pending_reward
                total += info.pending_reward
            if i % 1000 == 0:
                logger.info("%s: fetched %d / %d. Total: %s", self.name, i, len(stakes), total)

        return [self._holding(staker, amount, denom=denom) for staker, amount in pending.items()]


def _strategy_id(remainder: bytes) -> int:
    if not remainder or not remainder.isdigit():
        msg = f"Strategy id is not an ASCII integer: {remainder!r}"
        raise MalformedKeyError(msg)
    return int(remainder)
