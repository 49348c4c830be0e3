"""Astroport generator resolver."""

from ownership_snapshot.core.allocation import allocate
from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.decoder import decode_record
from ownership_snapshot.core.keys import decode_trailing_address, namespace_prefix
from ownership_snapshot.core.models import GeneratorDeposit, Holding
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import StateScanner
from ownership_snapshot.protocols.base import BaseSourceResolver


@ResolverRegistry.register
class AstroGeneratorResolver(BaseSourceResolver):
    """
    Resolver for LP tokens staked in the Astroport generator.

    Deposits of one LP token are converted into the target asset through the
    pair's reserve of that asset and its total issued LP shares.

    """

    name = "astro_generator"
    description = "Astroport generator LP deposits"
    config_section = "astro_generator"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        reserve, total_share = self._target_reserve(context, self.settings.pair)

        prefix = namespace_prefix("user_info", self.settings.lp_token)
        holdings: list[Holding] = []
        for entry in StateScanner(context.store).iter_prefix(self.settings.generator, prefix):
            with self._entry_errors(entry):
                deposit = decode_record(entry.value, GeneratorDeposit)
                if deposit.amount == 0:
                    continue
                holder = decode_trailing_address(entry.key, len(prefix), textual=True)
            amount = allocate(deposit.amount, total_share, reserve)
            if amount:
                holdings.append(self._holding(str(holder), amount))

        return holdings
