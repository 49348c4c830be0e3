"""Chain state access: LCD client and in-memory state."""

from ownership_snapshot.rpc.lcd import LCDClient
from ownership_snapshot.rpc.memory import MemoryChainState, load_state_file

__all__ = [
    "LCDClient",
    "MemoryChainState",
    "load_state_file",
]
