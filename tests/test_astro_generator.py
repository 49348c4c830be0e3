"""Tests for the Astroport generator resolver."""

import pytest

from ownership_snapshot.core.config import AstroGeneratorConfig, SnapshotConfig
from ownership_snapshot.core.errors import AssetNotInPoolError, QueryFailedError, ResolverError
from ownership_snapshot.core.keys import namespace_prefix
from ownership_snapshot.core.models import Address
from ownership_snapshot.protocols.astro_generator import AstroGeneratorResolver

GENERATOR = str(Address.from_bytes(b"\xb1" * 20))
PAIR = str(Address.from_bytes(b"\xb2" * 20))
LP_TOKEN = str(Address.from_bytes(b"\xb3" * 20))


@pytest.fixture
def config(target_asset):
    return SnapshotConfig(
        target_asset=target_asset,
        astro_generator=AstroGeneratorConfig(generator=GENERATOR, pair=PAIR, lp_token=LP_TOKEN),
    )


def _deposit(chain, lp_token, holder, amount):
    key = namespace_prefix("user_info", lp_token) + str(holder).encode()
    chain.set_entry(GENERATOR, key, {"amount": amount, "reward_user_index": "0.5"})
    return key


def test_generator_holdings(chain, context, config, make_address, pool_response, target_asset):
    """Test allocation of deposits of the configured LP token only."""
    chain.set_query_response(PAIR, {"pool": {}}, pool_response(1_000_000, 4_000_000, 500_000))
    _deposit(chain, LP_TOKEN, make_address(1), "50000")
    _deposit(chain, LP_TOKEN, make_address(2), "0")
    _deposit(chain, LP_TOKEN, make_address(3), "125000")
    _deposit(chain, "terra1otherlp", make_address(4), "99999")

    holdings = AstroGeneratorResolver(config).resolve(context)

    assert sorted((h.address, h.amount) for h in holdings) == sorted(
        [(str(make_address(1)), 100_000), (str(make_address(3)), 250_000)]
    )
    assert all(h.denom == target_asset for h in holdings)


def test_target_asset_not_in_pair(chain, context, config, make_address, pool_response):
    """Test that a pair without the target asset aborts the resolver."""
    chain.set_query_response(PAIR, {"pool": {}}, pool_response(1, 1, 1, target="terra1somethingelse"))
    _deposit(chain, LP_TOKEN, make_address(1), "1")

    with pytest.raises(ResolverError) as exc_info:
        AstroGeneratorResolver(config).resolve(context)

    assert isinstance(exc_info.value.__cause__, AssetNotInPoolError)


def test_failed_pool_query(context, config):
    """Test that a failed pair query aborts the resolver."""
    with pytest.raises(ResolverError) as exc_info:
        AstroGeneratorResolver(config).resolve(context)

    assert isinstance(exc_info.value.__cause__, QueryFailedError)


def test_bad_holder_key(chain, context, config, pool_response):
    """Test that a key without a valid address names the offending key."""
    chain.set_query_response(PAIR, {"pool": {}}, pool_response(1_000_000, 4_000_000, 500_000))
    key = namespace_prefix("user_info", LP_TOKEN) + b"garbage"
    chain.set_entry(GENERATOR, key, {"amount": "1"})

    with pytest.raises(ResolverError) as exc_info:
        AstroGeneratorResolver(config).resolve(context)

    assert exc_info.value.key == key
