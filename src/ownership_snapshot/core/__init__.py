"""Core functionality including models, codecs, allocation, scanning, and the ledger."""

from ownership_snapshot.core.allocation import allocate, rescale, share_in_assets, underlying_for_target
from ownership_snapshot.core.config import SnapshotConfig
from ownership_snapshot.core.context import SnapshotContext, StoreEntry
from ownership_snapshot.core.decoder import DecodeMode, decode, decode_record
from ownership_snapshot.core.ledger import Blacklist, SnapshotLedger
from ownership_snapshot.core.models import Address, BalanceEntry, Holding, PoolState, SnapshotReport
from ownership_snapshot.core.orchestrator import SnapshotOrchestrator
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.core.scanner import ScanControl, SingletonPolicy, StateScanner

__all__ = [
    "Address",
    "BalanceEntry",
    "Blacklist",
    "DecodeMode",
    "Holding",
    "PoolState",
    "ResolverRegistry",
    "ScanControl",
    "SingletonPolicy",
    "SnapshotConfig",
    "SnapshotContext",
    "SnapshotLedger",
    "SnapshotOrchestrator",
    "SnapshotReport",
    "StateScanner",
    "StoreEntry",
    "allocate",
    "decode",
    "decode_record",
    "rescale",
    "share_in_assets",
    "underlying_for_target",
]
