"""Tests for the Astroport lockdrop resolver."""

import pytest

from ownership_snapshot.core.config import AstroLockdropConfig, SnapshotConfig
from ownership_snapshot.core.errors import MissingQuantityError, MissingRecordError, ResolverError
from ownership_snapshot.core.keys import encode_length, namespace_prefix
from ownership_snapshot.core.ledger import SnapshotLedger
from ownership_snapshot.core.models import Address
from ownership_snapshot.core.scanner import StateScanner
from ownership_snapshot.protocols.astro_lockdrop import AstroLockdropResolver
from ownership_snapshot.rpc.memory import MemoryChainState

LOCKDROP = str(Address.from_bytes(b"\xc1" * 20))
GENERATOR = str(Address.from_bytes(b"\xc2" * 20))
PAIR = str(Address.from_bytes(b"\xc3" * 20))
LEGACY_LP = str(Address.from_bytes(b"\xc4" * 20))
ASTRO_LP = "terra1astrolp"
DEPOSIT_QUERY = {"deposit": {"lp_token": ASTRO_LP, "user": LOCKDROP}}


@pytest.fixture
def config(target_asset):
    return SnapshotConfig(
        target_asset=target_asset,
        astro_lockdrop=AstroLockdropConfig(
            lockdrop=LOCKDROP,
            generator=GENERATOR,
            pair=PAIR,
            legacy_lp_token=LEGACY_LP,
        ),
    )


def _position(chain, holder, duration, position):
    text = str(holder).encode()
    key = namespace_prefix("lockup_position", LEGACY_LP) + encode_length(text) + text + duration.to_bytes(8, "big")
    chain.set_entry(LOCKDROP, key, position)
    return key


@pytest.fixture
def lockdrop(chain, make_address, pool_response):
    """2000 legacy LP locked and migrated into 1000 LP staked in the generator."""
    chain.set_query_response(PAIR, {"pool": {}}, pool_response(1_000_000, 4_000_000, 500_000))
    chain.set_query_response(GENERATOR, DEPOSIT_QUERY, "1000")
    chain.set_entry(
        LOCKDROP,
        namespace_prefix("LiquidityPools") + b"terra1anotherlp",
        {"terraswap_amount_in_lockups": "5", "migration_info": {"astroport_lp_token": "terra1wrong"}},
    )
    chain.set_entry(
        LOCKDROP,
        namespace_prefix("LiquidityPools") + LEGACY_LP.encode(),
        {"terraswap_amount_in_lockups": "2000", "migration_info": {"astroport_lp_token": ASTRO_LP}},
    )

    holder_a, holder_b, holder_c = make_address(1), make_address(2), make_address(3)
    _position(chain, holder_a, 1, {"lp_units_locked": "200", "astroport_lp_transferred": None})
    _position(chain, holder_a, 2, {"lp_units_locked": "100", "astroport_lp_transferred": None})
    _position(chain, holder_b, 1, {"lp_units_locked": "600", "astroport_lp_transferred": "300"})
    _position(chain, holder_c, 1, {"lp_units_locked": "1", "astroport_lp_transferred": None})
    return {"a": str(holder_a), "b": str(holder_b), "c": str(holder_c)}


def test_lockdrop_holdings(context, config, lockdrop):
    """Test that positions are rescaled into migrated LP and then into the target asset."""
    holdings = AstroLockdropResolver(config).resolve(context)

    # 200 and 100 legacy units -> 100 and 50 LP -> 200 and 100 of the target
    assert [(h.address, h.amount) for h in holdings] == [(lockdrop["a"], 200), (lockdrop["a"], 100)]

    ledger = SnapshotLedger()
    ledger.add_holdings(holdings)
    assert ledger.balance(lockdrop["a"], config.target_asset) == 300


def test_transferred_positions_excluded(context, config, lockdrop):
    """Test that a withdrawn position contributes nothing despite locked units."""
    holdings = AstroLockdropResolver(config).resolve(context)
    assert lockdrop["b"] not in {h.address for h in holdings}


def test_null_units_fail(chain, context, config, lockdrop, make_address):
    """Test that an active position without locked units aborts the resolver."""
    key = _position(chain, make_address(4), 1, {"lp_units_locked": None, "astroport_lp_transferred": None})

    with pytest.raises(ResolverError) as exc_info:
        AstroLockdropResolver(config).resolve(context)

    assert exc_info.value.key == key
    assert isinstance(exc_info.value.__cause__, MissingQuantityError)


def test_missing_migration_pool(chain, context, config, pool_response):
    """Test that a lockdrop without the legacy LP pool aborts the resolver."""
    chain.set_query_response(PAIR, {"pool": {}}, pool_response(1_000_000, 4_000_000, 500_000))

    with pytest.raises(ResolverError) as exc_info:
        AstroLockdropResolver(config).resolve(context)

    assert exc_info.value.resolver == "astro_lockdrop"
    assert isinstance(exc_info.value.__cause__, MissingRecordError)


def test_migration_pool_lookup(chain, config, lockdrop):
    """Test that the pool for the legacy LP token is found past other pools."""
    info = AstroLockdropResolver(config).migration_pool_info(StateScanner(chain))

    assert info.terraswap_amount_in_lockups == 2000
    assert info.migration_info.astroport_lp_token == ASTRO_LP

    with pytest.raises(MissingRecordError):
        AstroLockdropResolver(config).migration_pool_info(StateScanner(MemoryChainState()))


def test_null_generator_deposit(chain, context, config, lockdrop):
    """Test that a null generator deposit aborts the resolver."""
    chain.set_query_response(GENERATOR, DEPOSIT_QUERY, None)

    with pytest.raises(ResolverError) as exc_info:
        AstroLockdropResolver(config).resolve(context)

    assert isinstance(exc_info.value.__cause__, MissingQuantityError)
