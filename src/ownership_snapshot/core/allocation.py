"""Proportional allocation of pooled amounts with chain-consistent floor rounding.

All arithmetic is done on Python ints: the product is formed at full
precision and floor-divided once, never through floats or truncated decimals.
"""

from ownership_snapshot.core.errors import AssetNotInPoolError
from ownership_snapshot.core.models import PoolState


def allocate(holder_units: int, total_units: int, total_underlying: int) -> int:
    """
    Compute a holder's entitlement to a pooled amount.

    Parameters
    ----------
    holder_units : int
        Shares or units owned by the holder
    total_units : int
        Total shares or units issued
    total_underlying : int
        Total amount backing the issued units

    Returns
    -------
    int
        `floor(holder_units * total_underlying / total_units)`, or 0 when no
        units are issued

    Raises
    ------
    ValueError
        If any argument is negative

    Examples
    --------
    >>> allocate(50_000, 500_000, 1_000_000)
    100000
    >>> allocate(1, 0, 10)
    0

    """
    if holder_units < 0 or total_units < 0 or total_underlying < 0:
        msg = f"Allocation inputs must be non-negative: {holder_units}, {total_units}, {total_underlying}"
        raise ValueError(msg)
    if total_units == 0:
        return 0
    return holder_units * total_underlying // total_units


def rescale(units: int, numerator: int, denominator: int) -> int:
    """Convert `units` by the ratio `numerator / denominator`, rounding down."""
    return allocate(units, denominator, numerator)


def underlying_for_target(pool: PoolState, target_asset: str) -> int:
    """
    Get the reserve of the target asset in a two-asset pool.

    Parameters
    ----------
    pool : PoolState
        Decoded pool state
    target_asset : str
        Token contract address or native denom of the target asset

    Returns
    -------
    int
        Reserve amount of the target asset

    Raises
    ------
    AssetNotInPoolError
        If neither pool asset is the target

    """
    for asset in pool.assets:
        if asset.info.identifier == target_asset:
            return asset.amount
    held = ", ".join(asset.info.identifier for asset in pool.assets)
    msg = f"Target asset {target_asset} not found in pool of [{held}]"
    raise AssetNotInPoolError(msg)


def share_in_assets(pool: PoolState, lp_amount: int) -> tuple[int, int]:
    """Amounts of both pool assets backing `lp_amount` LP shares."""
    return (
        allocate(lp_amount, pool.total_share, pool.reserve_a),
        allocate(lp_amount, pool.total_share, pool.reserve_b),
    )
