"""Data models for addresses, contract records, holdings, and snapshot reports."""

import base64
import binascii
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

import bech32
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer
from pydantic.fields import FieldInfo
from pydantic_core import PydanticCustomError

from ownership_snapshot.core.errors import AddressNotFoundError, DecodeError

ADDRESS_WIDTH = 20
DEFAULT_HRP = "terra"

# sdk.Dec precision used by staking shares
DEC_PRECISION = 18


def _parse_uint128(value: Any) -> int:
    """Parse a Uint128 quantity from its JSON decimal-string or integer encoding."""
    if value is None:
        raise PydanticCustomError("missing_quantity", "quantity is null")
    if isinstance(value, bool):
        raise PydanticCustomError("uint128_type", "expected an unsigned integer, got {value}", {"value": value})
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        number = int(value)
    else:
        raise PydanticCustomError("uint128_type", "expected an unsigned integer, got {value!r}", {"value": value})
    if number < 0:
        raise PydanticCustomError("uint128_type", "quantity must not be negative, got {value}", {"value": number})
    return number


def _parse_dec18(value: Any) -> int:
    """Parse an 18-decimal fixed-point string into its integer atto representation."""
    if value is None:
        raise PydanticCustomError("missing_quantity", "quantity is null")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise PydanticCustomError("dec_type", "expected a decimal string, got {value!r}", {"value": value})
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise PydanticCustomError("dec_type", "expected a decimal string, got {value!r}", {"value": value}) from None
    if not number.is_finite() or number < 0:
        raise PydanticCustomError("dec_type", "expected a non-negative decimal, got {value!r}", {"value": value})
    scaled = number.scaleb(DEC_PRECISION)
    if scaled != scaled.to_integral_value():
        raise PydanticCustomError("dec_type", "more than 18 decimal places in {value!r}", {"value": value})
    return int(scaled)


Uint128 = Annotated[int, BeforeValidator(_parse_uint128)]
Dec18 = Annotated[int, BeforeValidator(_parse_dec18)]


def is_quantity_field(field: FieldInfo) -> bool:
    """True when the field is a Uint128 or Dec18 quantity."""
    return any(
        isinstance(meta, BeforeValidator) and meta.func in (_parse_uint128, _parse_dec18) for meta in field.metadata
    )


class Address(BaseModel):
    """
    Fixed-width account or contract address.

    Equality and hashing are by raw bytes and human-readable prefix.

    Attributes
    ----------
    raw : bytes
        Raw address bytes (20 bytes for accounts on the observed chain)
    hrp : str
        Bech32 human-readable prefix

    """

    model_config = ConfigDict(frozen=True)

    raw: bytes
    hrp: str = DEFAULT_HRP

    def __str__(self) -> str:
        return bech32.bech32_encode(self.hrp, bech32.convertbits(self.raw, 8, 5))

    @classmethod
    def from_bytes(cls, raw: bytes, hrp: str = DEFAULT_HRP) -> "Address":
        return cls(raw=bytes(raw), hrp=hrp)

    @classmethod
    def from_bech32(cls, value: str) -> "Address":
        """
        Parse an address from its canonical bech32 string.

        Raises
        ------
        AddressNotFoundError
            If the string is not valid bech32

        """
        hrp, data = bech32.bech32_decode(value)
        if hrp is None or data is None:
            msg = f"Invalid bech32 address: {value!r}"
            raise AddressNotFoundError(msg)
        raw = bech32.convertbits(data, 5, 8, False)
        if raw is None:
            msg = f"Invalid bech32 payload in address: {value!r}"
            raise AddressNotFoundError(msg)
        return cls(raw=bytes(raw), hrp=hrp)

    @classmethod
    def from_base64(cls, value: str, hrp: str = DEFAULT_HRP) -> "Address":
        """
        Parse an address stored as base64 of its raw bytes.

        Raises
        ------
        AddressNotFoundError
            If the value is not valid base64 or decodes to nothing

        """
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            msg = f"Invalid base64 address: {value!r}"
            raise AddressNotFoundError(msg) from e
        if not raw:
            msg = f"Empty base64 address: {value!r}"
            raise AddressNotFoundError(msg)
        return cls(raw=raw, hrp=hrp)


class TokenInfo(BaseModel):
    contract_addr: str


class NativeTokenInfo(BaseModel):
    denom: str


class AssetInfo(BaseModel):
    """
    Identifies a pool asset, either a CW20 contract or a native denomination.

    Attributes
    ----------
    token : TokenInfo | None
        CW20 token contract, if the asset is a token
    native_token : NativeTokenInfo | None
        Native denomination, if the asset is a native coin

    """

    token: TokenInfo | None = None
    native_token: NativeTokenInfo | None = None

    @property
    def identifier(self) -> str:
        """
        Contract address or native denom of the asset.

        Raises
        ------
        DecodeError
            If neither variant is set

        """
        if self.token is not None:
            return self.token.contract_addr
        if self.native_token is not None:
            return self.native_token.denom
        msg = "Asset info has neither a token nor a native denom"
        raise DecodeError(msg)


class Asset(BaseModel):
    info: AssetInfo
    amount: Uint128


class PoolState(BaseModel):
    """
    Reserves and issued shares of a two-asset AMM pool (`{"pool": {}}` response).

    Attributes
    ----------
    assets : list[Asset]
        Exactly two pool assets with their reserve amounts
    total_share : int
        Total LP shares issued by the pool

    """

    assets: list[Asset] = Field(min_length=2, max_length=2)
    total_share: Uint128

    @property
    def reserve_a(self) -> int:
        return self.assets[0].amount

    @property
    def reserve_b(self) -> int:
        return self.assets[1].amount

    @property
    def asset_info_a(self) -> AssetInfo:
        return self.assets[0].info

    @property
    def asset_info_b(self) -> AssetInfo:
        return self.assets[1].info

    @property
    def total_shares(self) -> int:
        return self.total_share


class StrategyEntry(BaseModel):
    """Entry under a vault factory's `strategies` map; the address is base64 of raw bytes."""

    address: str


class StrategyAssetConfig(BaseModel):
    asset_token: str | None = None
    asset_token_pair: str


class StrategyConfig(BaseModel):
    """
    Staking strategy configuration.

    Attributes
    ----------
    base_token : str
        LP token the strategy is denominated in (base64 of raw address)
    strategy_config : StrategyAssetConfig
        Paired asset configuration

    """

    base_token: str
    strategy_config: StrategyAssetConfig

    def lp_token_address(self, hrp: str = DEFAULT_HRP) -> Address:
        return Address.from_base64(self.base_token, hrp)


class StrategyTotals(BaseModel):
    total_bond_amount: Uint128
    total_shares: Uint128


class HolderShare(BaseModel):
    """Per-holder share of a strategy; the holder is encoded in the store key."""

    shares: Uint128


class GeneratorDeposit(BaseModel):
    """Per-holder LP deposit in an AMM generator (`user_info` map)."""

    amount: Uint128


class LockPosition(BaseModel):
    """
    Lockdrop position of one holder for one lock duration.

    The holder and lock duration are encoded in the store key.

    Attributes
    ----------
    lp_units_locked : int | None
        Legacy LP units locked
    astroport_lp_transferred : int | None
        Set once the holder has withdrawn the migrated LP

    """

    lp_units_locked: Uint128 | None = None
    astroport_lp_transferred: Uint128 | None = None

    @property
    def transferred(self) -> bool:
        return self.astroport_lp_transferred is not None


class MigrationInfo(BaseModel):
    astroport_lp_token: str


class MigrationPoolInfo(BaseModel):
    """Lockdrop aggregate for one legacy LP token (`LiquidityPools` map)."""

    terraswap_amount_in_lockups: Uint128
    migration_info: MigrationInfo


class StakerInfo(BaseModel):
    """Response of a vault factory `get_staker_info` query."""

    staker: str
    bond_amount: Uint128 | None = None
    pending_reward: Uint128


class RewardInfoLine(BaseModel):
    asset_token: str
    bond_amount: Uint128


class RewardInfoResponse(BaseModel):
    """Response of a farm `reward_info` query."""

    reward_infos: list[RewardInfoLine] = Field(default_factory=list)


class CfeAccountInfo(BaseModel):
    """
    Vesting state of one community farming event account.

    Attributes
    ----------
    phase1_claimable_amount : int
        Reward still claimable from the first phase
    phase2_claimable_amount : int
        Reward still claimable from the second phase
    pending_reward_claimed : int | None
        Pending reward already claimed
    extension_pending_reward_claimed : int | None
        Extension reward already claimed

    """

    phase1_claimable_amount: Uint128
    phase2_claimable_amount: Uint128
    pending_reward_claimed: Uint128 | None = None
    extension_pending_reward_claimed: Uint128 | None = None
    last_claimed_phase1: int | None = None
    last_claimed_phase2: int | None = None

    @property
    def claimable(self) -> int:
        return self.phase1_claimable_amount + self.phase2_claimable_amount


class CfeAccountResponse(BaseModel):
    """Response of a vesting contract `cfe_account` query."""

    address: str
    info: CfeAccountInfo


class Validator(BaseModel):
    operator_address: str
    tokens: Uint128
    delegator_shares: Dec18


class Delegation(BaseModel):
    delegator_address: str
    validator_address: str
    shares: Dec18


class UnbondingEntry(BaseModel):
    balance: Uint128


class UnbondingDelegation(BaseModel):
    delegator_address: str
    validator_address: str
    entries: list[UnbondingEntry] = Field(default_factory=list)


class Coin(BaseModel):
    denom: str
    amount: Uint128


class BalanceEntry(BaseModel):
    """
    Balance of one denomination held by an address.

    Attributes
    ----------
    denom : str
        Native denom or token contract address
    amount : int
        Amount in the smallest unit

    """

    denom: str
    amount: int = Field(ge=0)

    @field_serializer("amount")
    def _serialize_amount(self, amount: int) -> str:
        return str(amount)


class Holding(BaseModel):
    """
    One `(address, denom, amount)` contribution produced by a source resolver.

    Attributes
    ----------
    address : str
        Holder address in its string form
    denom : str
        Denomination the amount is expressed in
    amount : int
        Entitled amount in the smallest unit
    source : str
        Name of the resolver that produced the holding
    is_contract : bool | None
        Whether the holder is a contract (informational, filled by the orchestrator)

    """

    address: str
    denom: str
    amount: int = Field(ge=0)
    source: str
    is_contract: bool | None = None

    @field_serializer("amount")
    def _serialize_amount(self, amount: int) -> str:
        return str(amount)


class SnapshotReport(BaseModel):
    """
    Result of a full snapshot run.

    Attributes
    ----------
    height : int | None
        Block height the store view was pinned to
    holdings : dict[str, list[Holding]]
        Annotated holdings per resolver name
    ledger : dict[str, list[BalanceEntry]]
        Merged per-address balances

    """

    height: int | None = None
    holdings: dict[str, list[Holding]] = Field(default_factory=dict)
    ledger: dict[str, list[BalanceEntry]] = Field(default_factory=dict)
