"""Snapshot configuration: protocol contract addresses and asset identifiers."""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from ownership_snapshot.core.errors import AddressNotFoundError
from ownership_snapshot.core.models import DEFAULT_HRP, Address
from ownership_snapshot.core.scanner import SingletonPolicy


def _contract_address(value: str) -> str:
    try:
        Address.from_bech32(value)
    except AddressNotFoundError as e:
        raise ValueError(str(e)) from e
    return value


# Contract address in canonical bech32 form
ContractAddress = Annotated[str, AfterValidator(_contract_address)]


class ApolloVaultsConfig(BaseModel):
    """
    Staking vault factory and its strategies.

    Attributes
    ----------
    factory : str
        Vault factory contract; its `strategies` map lists strategy contracts
    strategies : list[str]
        Extra strategy contracts to export even if the factory does not list them
    priced_strategies : dict[str, str]
        Strategy address -> AMM pair; LP holdings of these strategies are
        converted into the target asset through the pair

    """

    factory: ContractAddress
    strategies: list[ContractAddress] = Field(default_factory=list)
    priced_strategies: dict[ContractAddress, ContractAddress] = Field(default_factory=dict)


class AstroGeneratorConfig(BaseModel):
    generator: ContractAddress
    pair: ContractAddress
    lp_token: ContractAddress


class AstroLockdropConfig(BaseModel):
    """
    Lockdrop that migrated a legacy LP token into an AMM generator.

    Attributes
    ----------
    lockdrop : str
        Lockdrop contract
    generator : str
        Generator the migrated LP is staked in
    pair : str
        AMM pair of the migrated LP token
    legacy_lp_token : str
        LP token that was locked before migration

    """

    lockdrop: ContractAddress
    generator: ContractAddress
    pair: ContractAddress
    legacy_lp_token: ContractAddress


class SpecFarmConfig(BaseModel):
    farm: ContractAddress
    pair: ContractAddress


class ApolloRewardsConfig(BaseModel):
    factory: ContractAddress
    reward_denom: str | None = None


class ApolloCfeConfig(BaseModel):
    """
    Community farming event vesting accounts of Apollo vault users.

    Attributes
    ----------
    factory : str
        Vault factory; its `rewards` map lists the participating addresses
    vesting : str
        CFE vesting contract answering `cfe_account` queries

    """

    factory: ContractAddress
    vesting: ContractAddress


class NativeConfig(BaseModel):
    """
    Native staking and bank export settings.

    Attributes
    ----------
    bond_denom : str
        Staking denomination
    balance_denoms : list[str]
        Denominations of plain account balances to include
    excluded_delegators : list[str]
        Delegators whose stake is attributed elsewhere (liquid staking hubs)
    module_accounts : list[str]
        Bonding and unbonding pool accounts, blacklisted for the bond denom

    """

    bond_denom: str = "uluna"
    balance_denoms: list[str] = Field(default_factory=lambda: ["uluna", "uusd"])
    excluded_delegators: list[str] = Field(default_factory=list)
    module_accounts: list[str] = Field(default_factory=list)


class SnapshotConfig(BaseModel):
    """
    Full configuration of a snapshot run.

    Attributes
    ----------
    hrp : str
        Bech32 prefix of chain addresses
    target_asset : str
        Token contract or native denom whose ownership is being snapshotted
    enabled_resolvers : list[str]
        Resolver names to run; empty means every registered resolver
    singleton_policy : SingletonPolicy
        Policy for single-entry records such as strategy config and totals
    max_workers : int
        Resolvers run in parallel when greater than 1
    blacklist : dict[str, list[str]]
        Denom -> addresses removed from the final ledger

    """

    hrp: str = DEFAULT_HRP
    target_asset: str
    enabled_resolvers: list[str] = Field(default_factory=list)
    singleton_policy: SingletonPolicy = SingletonPolicy.EXACTLY_ONE
    max_workers: int = Field(default=1, ge=1)
    blacklist: dict[str, list[str]] = Field(default_factory=dict)

    apollo_vaults: ApolloVaultsConfig | None = None
    apollo_rewards: ApolloRewardsConfig | None = None
    apollo_cfe: ApolloCfeConfig | None = None
    astro_generator: AstroGeneratorConfig | None = None
    astro_lockdrop: AstroLockdropConfig | None = None
    spec_farm: SpecFarmConfig | None = None
    native: NativeConfig | None = None
