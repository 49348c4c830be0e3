"""Source resolvers for the protocols included in a snapshot."""

# Import all resolvers to trigger auto-registration
from ownership_snapshot.protocols.apollo_cfe import ApolloCfeResolver
from ownership_snapshot.protocols.apollo_rewards import ApolloRewardsResolver
from ownership_snapshot.protocols.apollo_vaults import ApolloVaultsResolver
from ownership_snapshot.protocols.astro_generator import AstroGeneratorResolver
from ownership_snapshot.protocols.astro_lockdrop import AstroLockdropResolver
from ownership_snapshot.protocols.base import BaseSourceResolver
from ownership_snapshot.protocols.native import NativeResolver
from ownership_snapshot.protocols.spec_farm import SpecFarmResolver

__all__ = [
    "ApolloCfeResolver",
    "ApolloRewardsResolver",
    "ApolloVaultsResolver",
    "AstroGeneratorResolver",
    "AstroLockdropResolver",
    "BaseSourceResolver",
    "NativeResolver",
    "SpecFarmResolver",
]
