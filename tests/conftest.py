"""Pytest configuration and shared fixtures for ownership-snapshot tests."""

import base64

import pytest

# Import all resolvers to trigger auto-registration
from ownership_snapshot import protocols  # noqa: F401
from ownership_snapshot.core.config import SnapshotConfig
from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.models import Address
from ownership_snapshot.rpc.memory import MemoryChainState

TARGET_ASSET = "terra100yeqvww74h4yaejj6h733thgcafdaukjtw397"
PAIRED_DENOM = "uusd"
SNAPSHOT_HEIGHT = 7544910


@pytest.fixture
def target_asset():
    return TARGET_ASSET


@pytest.fixture
def make_address():
    """Build a distinct 20-byte address from a small integer."""

    def _make(n: int) -> Address:
        return Address.from_bytes(bytes([n]) * 20)

    return _make


@pytest.fixture
def b64_address():
    """Base64 of an address's raw bytes, as stored in vault configs."""

    def _encode(address: Address) -> str:
        return base64.b64encode(address.raw).decode()

    return _encode


@pytest.fixture
def pool_response():
    """Build a `{"pool": {}}` response with the target asset as asset A."""

    def _pool(target_reserve: int, other_reserve: int, total_share: int, target: str = TARGET_ASSET) -> dict:
        return {
            "assets": [
                {"info": {"token": {"contract_addr": target}}, "amount": str(target_reserve)},
                {"info": {"native_token": {"denom": PAIRED_DENOM}}, "amount": str(other_reserve)},
            ],
            "total_share": str(total_share),
        }

    return _pool


@pytest.fixture
def chain():
    """Empty in-memory chain state at the snapshot height."""
    return MemoryChainState(height=SNAPSHOT_HEIGHT)


@pytest.fixture
def context(chain):
    return SnapshotContext.from_chain(chain, chain.height)


@pytest.fixture
def base_config():
    """Configuration with the target asset and no protocol sections."""
    return SnapshotConfig(target_asset=TARGET_ASSET)
