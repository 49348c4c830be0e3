"""Apollo community farming event (CFE) vesting resolver."""

import logging

from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.keys import decode_holder_key, namespace_prefix
from ownership_snapshot.core.models import CfeAccountResponse, Holding
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import StateScanner
from ownership_snapshot.protocols.base import BaseSourceResolver

logger = logging.getLogger(__name__)


@ResolverRegistry.register
class ApolloCfeResolver(BaseSourceResolver):
    """
    Resolver for CFE rewards still vesting for Apollo vault users.

    Participants are the distinct addresses under the factory's `rewards`
    map (keyed by address and strategy id). Each one is looked up in the
    vesting contract and the claimable amounts of both phases are reported
    in the target asset.

    """

    name = "apollo_cfe"
    description = "Apollo community farming event vesting rewards"
    config_section = "apollo_cfe"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        participants = self.participants(StateScanner(context.store))
        logger.info("%s: %d participants", self.name, len(participants))

        holdings: list[Holding] = []
        total = 0
        for i, address in enumerate(participants, start=1):
            account = self._query(
                context,
                self.settings.vesting,
                {"cfe_account": {"address": address}},
                CfeAccountResponse,
            )
            claimable = account.info.claimable
            if claimable:
                holdings.append(self._holding(address, claimable))
                total += claimable
            if i % 1000 == 0:
                logger.info("%s: fetched %d / %d. Total: %s", self.name, i, len(participants), total)

        return holdings

    def participants(self, scanner: StateScanner) -> list[str]:
        """Distinct addresses under the factory `rewards` map, in key order."""
        prefix = namespace_prefix("rewards")
        seen: dict[str, None] = {}
        for entry in scanner.iter_prefix(self.settings.factory, prefix):
            with self._entry_errors(entry):
                address, _ = decode_holder_key(entry.key, len(prefix), hrp=self.config.hrp)
            seen.setdefault(str(address), None)
        return list(seen)
