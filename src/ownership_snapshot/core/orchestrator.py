"""Snapshot orchestrator running source resolvers against one store view."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from ownership_snapshot.core.config import SnapshotConfig
from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.ledger import Blacklist, SnapshotLedger
from ownership_snapshot.core.models import Holding, SnapshotReport
from ownership_snapshot.core.registry import ResolverRegistry

logger = logging.getLogger(__name__)


class SnapshotOrchestrator:
    """
    Runs source resolvers and merges their holdings into one ledger.

    Workflow:
    1. Build the enabled resolvers from the registry (or use the given ones)
    2. Run every resolver against the same pinned context, in parallel when
       `max_workers > 1`
    3. Merge each resolver's holdings into the ledger under a lock
    4. Remove blacklisted balances

    The run is all-or-nothing: the first resolver failure cancels pending
    resolvers and is re-raised, so no partial ledger is ever returned.

    Parameters
    ----------
    config : SnapshotConfig
        Snapshot configuration
    resolvers : list | None
        Resolver instances; defaults to `config.enabled_resolvers`
    max_workers : int | None
        Worker threads; defaults to `config.max_workers`

    """

    def __init__(
        self,
        config: SnapshotConfig,
        resolvers: list[Any] | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.config = config
        if resolvers is None:
            resolvers = ResolverRegistry.create(config.enabled_resolvers, config)
        self.resolvers = resolvers
        self.max_workers = max_workers or config.max_workers
        self._lock = threading.Lock()

    def run(self, context: SnapshotContext, resolvers: list[Any] | None = None) -> SnapshotLedger:
        """
        Compute the merged snapshot ledger.

        Parameters
        ----------
        context : SnapshotContext
            Chain collaborators pinned to the snapshot height
        resolvers : list | None
            Resolvers to run instead of the configured ones

        Returns
        -------
        SnapshotLedger
            Merged per-address balances

        Raises
        ------
        ResolverError
            If any resolver fails

        """
        ledger, _ = self._execute(context, resolvers)
        return ledger

    def collect(self, context: SnapshotContext, resolvers: list[Any] | None = None) -> SnapshotReport:
        """
        Compute the snapshot with per-resolver holdings annotated by address type.

        Parameters
        ----------
        context : SnapshotContext
            Chain collaborators pinned to the snapshot height
        resolvers : list | None
            Resolvers to run instead of the configured ones

        Returns
        -------
        SnapshotReport
            Holdings per resolver and the merged ledger

        """
        ledger, results = self._execute(context, resolvers)

        if context.classifier is not None:
            classified: dict[str, bool] = {}
            for holdings in results.values():
                for holding in holdings:
                    if holding.address not in classified:
                        classified[holding.address] = context.classifier.is_contract(holding.address)
                    holding.is_contract = classified[holding.address]

        return SnapshotReport(height=context.height, holdings=results, ledger=ledger.to_dict())

    def _execute(
        self,
        context: SnapshotContext,
        resolvers: list[Any] | None,
    ) -> tuple[SnapshotLedger, dict[str, list[Holding]]]:
        resolvers = resolvers if resolvers is not None else self.resolvers
        blacklist = self._build_blacklist(resolvers)
        ledger = SnapshotLedger()
        results: dict[str, list[Holding]] = {}

        def merge(resolver: Any, holdings: list[Holding]) -> None:
            kept = [holding for holding in holdings if not blacklist.contains(holding.denom, holding.address)]
            with self._lock:
                results.setdefault(resolver.name, []).extend(kept)
                ledger.add_holdings(kept)

        if self.max_workers > 1 and len(resolvers) > 1:
            with ThreadPoolExecutor(max_workers=min(len(resolvers), self.max_workers)) as executor:
                future_to_resolver = {executor.submit(resolver.resolve, context): resolver for resolver in resolvers}
                try:
                    for future in as_completed(future_to_resolver):
                        merge(future_to_resolver[future], future.result())
                except Exception:
                    for future in future_to_resolver:
                        future.cancel()
                    raise
        else:
            for resolver in resolvers:
                merge(resolver, resolver.resolve(context))

        removed = blacklist.apply(ledger)
        logger.info(
            "Snapshot at height %s: %d addresses from %d resolvers (%d blacklisted entries removed)",
            context.height,
            len(ledger),
            len(resolvers),
            removed,
        )
        return ledger, results

    def _build_blacklist(self, resolvers: list[Any]) -> Blacklist:
        blacklist = Blacklist(self.config.blacklist)
        for resolver in resolvers:
            for denom, addresses in resolver.blacklist_entries().items():
                for address in addresses:
                    blacklist.register(denom, address)
        return blacklist
