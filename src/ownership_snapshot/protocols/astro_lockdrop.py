"""Astroport lockdrop resolver."""

import logging

from ownership_snapshot.core.allocation import allocate, rescale
from ownership_snapshot.core.context import SnapshotContext, StoreEntry
from ownership_snapshot.core.decoder import decode_record, require_quantity
from ownership_snapshot.core.errors import MissingRecordError
from ownership_snapshot.core.keys import decode_text_holder_key, namespace_prefix
from ownership_snapshot.core.models import Holding, LockPosition, MigrationPoolInfo
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import ScanControl, StateScanner
from ownership_snapshot.protocols.base import BaseSourceResolver

logger = logging.getLogger(__name__)


@ResolverRegistry.register
class AstroLockdropResolver(BaseSourceResolver):
    """
    Resolver for legacy LP locked in the Astroport lockdrop.

    The lockdrop migrated every locked legacy LP unit into the new pair and
    staked the result in the generator. A position's legacy units are first
    rescaled into migrated LP (`units * migrated // locked`) and then
    allocated against the pair's target asset reserve. Positions whose
    migrated LP was already transferred out are excluded.

    """

    name = "astro_lockdrop"
    description = "Astroport lockdrop positions (migrated LP)"
    config_section = "astro_lockdrop"

    def collect(self, context: SnapshotContext) -> list[Holding]:
        reserve, total_share = self._target_reserve(context, self.settings.pair)
        scanner = StateScanner(context.store)

        pool_info = self.migration_pool_info(scanner)
        migrated = require_quantity(
            self._query_raw(
                context,
                self.settings.generator,
                {
                    "deposit": {
                        "lp_token": pool_info.migration_info.astroport_lp_token,
                        "user": self.settings.lockdrop,
                    }
                },
            ),
            "deposit",
        )
        locked_total = pool_info.terraswap_amount_in_lockups
        logger.info("%s: %s legacy LP locked, %s LP in generator", self.name, locked_total, migrated)

        prefix = namespace_prefix("lockup_position", self.settings.legacy_lp_token)
        holdings: list[Holding] = []
        skipped = 0
        for entry in scanner.iter_prefix(self.settings.lockdrop, prefix):
            with self._entry_errors(entry):
                holder, _duration = decode_text_holder_key(entry.key, len(prefix))
                position = decode_record(entry.value, LockPosition)
                if position.transferred:
                    skipped += 1
                    continue
                units = require_quantity(position.lp_units_locked, "lp_units_locked")

            lp_amount = rescale(units, migrated, locked_total)
            amount = allocate(lp_amount, total_share, reserve)
            if amount:
                holdings.append(self._holding(str(holder), amount))

        logger.debug("%s: skipped %d transferred positions", self.name, skipped)
        return holdings

    def migration_pool_info(self, scanner: StateScanner) -> MigrationPoolInfo:
        """
        Find the lockdrop aggregate for the configured legacy LP token.

        Raises
        ------
        MissingRecordError
            If the lockdrop has no pool for the legacy LP token

        """
        prefix = namespace_prefix("LiquidityPools")
        target = self.settings.legacy_lp_token.encode()
        found: list[MigrationPoolInfo] = []

        def visit(entry: StoreEntry) -> ScanControl:
            if entry.key[len(prefix) :] != target:
                return ScanControl.CONTINUE
            with self._entry_errors(entry):
                found.append(decode_record(entry.value, MigrationPoolInfo))
            return ScanControl.STOP

        scanner.scan(self.settings.lockdrop, prefix, visit)
        if not found:
            msg = f"No lockdrop pool for {self.settings.legacy_lp_token} in {self.settings.lockdrop}"
            raise MissingRecordError(msg)
        return found[0]
