"""Base source resolver class with common functionality."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel

from ownership_snapshot.core.allocation import underlying_for_target
from ownership_snapshot.core.config import SnapshotConfig
from ownership_snapshot.core.context import SnapshotContext, StoreEntry
from ownership_snapshot.core.decoder import decode_record
from ownership_snapshot.core.errors import QueryFailedError, ResolverError, SnapshotError
from ownership_snapshot.core.models import Holding, PoolState

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class BaseSourceResolver(ABC):
    """
    Abstract base class for source resolvers.

    Every resolver reads one protocol's state through a `SnapshotContext`
    and returns the holdings it contributes. Any failure is fatal and is
    reported as a `ResolverError` naming the resolver.

    Attributes
    ----------
    name : str
        Unique resolver identifier (must be set in subclass)
    description : str
        Short description of the protocol
    config_section : str
        Attribute of `SnapshotConfig` holding this resolver's settings

    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    config_section: ClassVar[str] = ""

    def __init__(self, config: SnapshotConfig) -> None:
        """
        Initialize the resolver.

        Parameters
        ----------
        config : SnapshotConfig
            Snapshot configuration

        Raises
        ------
        ValueError
            If the resolver has no name or its config section is missing

        """
        if not self.name:
            msg = f"{self.__class__.__name__} must define 'name' attribute"
            raise ValueError(msg)
        if not self.is_configured(config):
            msg = f"Resolver '{self.name}' requires the '{self.config_section}' config section"
            raise ValueError(msg)
        self.config = config
        self.settings: Any = getattr(config, self.config_section)

    @classmethod
    def is_configured(cls, config: SnapshotConfig) -> bool:
        return getattr(config, cls.config_section, None) is not None

    def resolve(self, context: SnapshotContext) -> list[Holding]:
        """
        Compute this protocol's holdings.

        Parameters
        ----------
        context : SnapshotContext
            Chain collaborators pinned to the snapshot height

        Returns
        -------
        list[Holding]
            Holdings found

        Raises
        ------
        ResolverError
            On any decode, lookup, or query failure

        """
        try:
            holdings = self.collect(context)
        except ResolverError:
            raise
        except SnapshotError as e:
            raise ResolverError(self.name, str(e)) from e

        logger.info(
            "%s: %d holdings, total %s",
            self.name,
            len(holdings),
            sum(holding.amount for holding in holdings),
        )
        return holdings

    @abstractmethod
    def collect(self, context: SnapshotContext) -> list[Holding]:
        """
        Read the protocol state and build holdings.

        Must be implemented by subclasses.

        """
        ...

    @contextmanager
    def _entry_errors(self, entry: StoreEntry) -> Iterator[None]:
        """Report any failure while handling `entry` as fatal, naming its key."""
        try:
            yield
        except ResolverError:
            raise
        except SnapshotError as e:
            raise ResolverError(self.name, str(e), entry.key) from e

    def _query_raw(self, context: SnapshotContext, contract: str, msg: dict[str, Any]) -> Any:
        """
        Run a smart query and return the parsed response.

        Raises
        ------
        QueryFailedError
            If the query executor fails for a reason of its own

        """
        try:
            return context.querier.query(contract, msg)
        except SnapshotError:
            raise
        except Exception as e:
            error_msg = f"Query {msg} against {contract} failed: {e}"
            raise QueryFailedError(error_msg) from e

    def _query(self, context: SnapshotContext, contract: str, msg: dict[str, Any], shape: type[T]) -> T:
        """Run a smart query and decode the response into `shape`."""
        return decode_record(self._query_raw(context, contract, msg), shape)

    def _target_reserve(self, context: SnapshotContext, pair: str) -> tuple[int, int]:
        """
        Query a pair and return (target asset reserve, total LP shares).

        Raises
        ------
        AssetNotInPoolError
            If the target asset is not in the pair

        """
        pool = self._query(context, pair, {"pool": {}}, PoolState)
        return underlying_for_target(pool, self.config.target_asset), pool.total_share

    def _holding(self, address: str, amount: int, denom: str | None = None) -> Holding:
        return Holding(
            address=address,
            denom=denom or self.config.target_asset,
            amount=amount,
            source=self.name,
        )

    def blacklist_entries(self) -> dict[str, list[str]]:
        """Denom -> addresses this protocol requires removed from the final ledger."""
        return {}
