"""Tests for proportional allocation."""

from fractions import Fraction

import pytest

from ownership_snapshot.core.allocation import allocate, rescale, share_in_assets, underlying_for_target
from ownership_snapshot.core.decoder import decode_record
from ownership_snapshot.core.errors import AssetNotInPoolError
from ownership_snapshot.core.models import PoolState


def test_pool_share_scenario(pool_response, target_asset):
    """Test a 10% holder of a pool gets 10% of the target reserve."""
    pool = decode_record(pool_response(1_000_000, 4_000_000, 500_000), PoolState)
    reserve = underlying_for_target(pool, target_asset)

    assert reserve == 1_000_000
    assert allocate(50_000, pool.total_share, reserve) == 100_000


@pytest.mark.parametrize(
    ("holder_units", "total_units", "total_underlying"),
    [
        (1, 3, 10),
        (2, 3, 10),
        (7, 7, 7),
        (0, 100, 1_000),
        (2**100 + 17, 2**101 - 1, 2**127 + 5),
        (2**128 - 1, 2**128 - 1, 2**128 - 1),
        (123_456_789_012_345_678_901, 987_654_321_098_765_432_109, 10**30 + 7),
    ],
)
def test_allocate_matches_exact_floor(holder_units, total_units, total_underlying):
    """Test allocation equals the exact rational floor, including beyond 64 bits."""
    expected = int(Fraction(holder_units * total_underlying, total_units))
    assert allocate(holder_units, total_units, total_underlying) == expected


def test_allocate_zero_total():
    """Test that nothing is allocated when no units are issued."""
    assert allocate(1, 0, 10) == 0
    assert allocate(0, 0, 0) == 0
    assert allocate(10**40, 0, 10**40) == 0


def test_allocate_rejects_negative():
    """Test that negative inputs are rejected."""
    with pytest.raises(ValueError):
        allocate(-1, 10, 10)
    with pytest.raises(ValueError):
        allocate(1, -10, 10)
    with pytest.raises(ValueError):
        allocate(1, 10, -10)


def test_allocations_never_exceed_underlying():
    """Test that floor rounding never hands out more than the pool holds."""
    holders = [1, 2, 3, 5, 8, 13, 21, 34]
    total = sum(holders)
    underlying = 1_000_003

    allocated = [allocate(h, total, underlying) for h in holders]

    assert sum(allocated) <= underlying
    assert underlying - sum(allocated) < len(holders)


def test_allocations_exact_when_evenly_divisible():
    """Test that evenly divisible shares distribute the whole underlying."""
    holders = [10, 20, 30, 40]
    total = sum(holders)
    underlying = total * 1_000

    assert sum(allocate(h, total, underlying) for h in holders) == underlying


def test_rescale():
    """Test ratio conversion of lock units into migrated LP."""
    assert rescale(10, 30, 20) == 15
    assert rescale(10, 1, 3) == 3
    assert rescale(10, 5, 0) == 0


def test_target_asset_as_second_pool_asset(pool_response, target_asset):
    """Test reserve lookup when the target asset is asset B."""
    response = pool_response(1_000_000, 4_000_000, 500_000)
    response["assets"].reverse()
    pool = decode_record(response, PoolState)

    assert underlying_for_target(pool, target_asset) == 1_000_000
    assert underlying_for_target(pool, "uusd") == 4_000_000


def test_target_asset_not_in_pool(pool_response):
    """Test that a pool without the target asset is an error."""
    pool = decode_record(pool_response(1, 2, 3), PoolState)
    with pytest.raises(AssetNotInPoolError):
        underlying_for_target(pool, "terra1somethingelse")


def test_share_in_assets(pool_response):
    """Test conversion of LP into both underlying assets."""
    pool = decode_record(pool_response(1_000_000, 4_000_000, 500_000), PoolState)
    assert share_in_assets(pool, 50_000) == (100_000, 400_000)
