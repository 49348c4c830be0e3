"""Ordered, prefix-bounded traversal of contract storage."""

import logging
from collections.abc import Callable, Iterator
from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel

from ownership_snapshot.core.context import StoreEntry, StoreView
from ownership_snapshot.core.decoder import decode_record
from ownership_snapshot.core.errors import DecodeError, DuplicateRecordError, MissingRecordError, ScanOrderError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ScanControl(StrEnum):
    """Visitor verdict after each entry."""

    CONTINUE = "continue"
    STOP = "stop"


class SingletonPolicy(StrEnum):
    """How `scan_single` treats a prefix expected to hold one record."""

    EXACTLY_ONE = "exactly_one"
    LAST_WINS = "last_wins"


class StateScanner:
    """
    Walks prefixed ranges of contract storage in raw key order.

    Keys yielded by the store view must start with the requested prefix and be
    strictly increasing; anything else means the view is inconsistent and the
    scan fails rather than visit an entry twice.

    Parameters
    ----------
    store : StoreView
        Store view pinned to the snapshot height

    """

    def __init__(self, store: StoreView) -> None:
        self.store = store

    def iter_prefix(self, contract: str, prefix: bytes) -> Iterator[StoreEntry]:
        """
        Lazily yield entries under `prefix`; callers may stop by breaking out.

        Parameters
        ----------
        contract : str
            Contract address
        prefix : bytes
            Raw key prefix

        Yields
        ------
        StoreEntry
            Entries with full keys, in ascending key order

        Raises
        ------
        ScanOrderError
            If a key repeats, goes backwards, or falls outside the prefix

        """
        previous: bytes | None = None
        for entry in self.store.scan_prefix(contract, prefix):
            key = bytes(entry.key)
            if not key.startswith(prefix):
                msg = f"Store returned key {key.hex()} outside prefix {prefix.hex()} for {contract}"
                raise ScanOrderError(msg)
            if previous is not None and key <= previous:
                msg = f"Store returned key {key.hex()} after {previous.hex()} for {contract}"
                raise ScanOrderError(msg)
            previous = key
            yield StoreEntry(key, bytes(entry.value))

    def scan(self, contract: str, prefix: bytes, visitor: Callable[[StoreEntry], ScanControl | None]) -> int:
        """
        Invoke `visitor` for each entry under `prefix` until it returns STOP.

        Parameters
        ----------
        contract : str
            Contract address
        prefix : bytes
            Raw key prefix
        visitor : Callable[[StoreEntry], ScanControl | None]
            Callback per entry; returning None means continue

        Returns
        -------
        int
            Number of entries visited

        """
        visited = 0
        for entry in self.iter_prefix(contract, prefix):
            visited += 1
            if visitor(entry) == ScanControl.STOP:
                break
        return visited

    def scan_single(
        self,
        contract: str,
        prefix: bytes,
        shape: type[T],
        policy: SingletonPolicy = SingletonPolicy.EXACTLY_ONE,
    ) -> T:
        """
        Read a record stored once under `prefix`.

        Parameters
        ----------
        contract : str
            Contract address
        prefix : bytes
            Raw key prefix of the singleton
        shape : type[BaseModel]
            Record shape to decode into
        policy : SingletonPolicy
            EXACTLY_ONE fails on more than one entry; LAST_WINS keeps the last
            decoded entry in scan order

        Returns
        -------
        BaseModel
            Decoded record

        Raises
        ------
        MissingRecordError
            If no entry exists under the prefix
        DuplicateRecordError
            If more than one entry exists and the policy is EXACTLY_ONE
        DecodeError
            If an entry cannot be decoded; the message names its key

        """
        record: T | None = None
        count = 0
        for entry in self.iter_prefix(contract, prefix):
            count += 1
            if count > 1 and policy == SingletonPolicy.EXACTLY_ONE:
                msg = f"Expected one {shape.__name__} under {prefix!r} in {contract}, found another at {entry.key.hex()}"
                raise DuplicateRecordError(msg)
            try:
                record = decode_record(entry.value, shape)
            except DecodeError as e:
                msg = f"{e} (contract={contract}, key={entry.key.hex()})"
                raise type(e)(msg) from e

        if record is None:
            msg = f"No {shape.__name__} under {prefix!r} in {contract}"
            raise MissingRecordError(msg)
        if count > 1:
            logger.debug("%d %s entries in %s, keeping the last", count, shape.__name__, contract)
        return record
