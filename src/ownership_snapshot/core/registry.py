"""Source resolver registry with auto-registration pattern."""

from typing import Any, Protocol

from ownership_snapshot.core.context import SnapshotContext
from ownership_snapshot.core.models import Holding


class SourceResolverInterface(Protocol):
    """
    Interface that all source resolvers must implement.

    Attributes
    ----------
    name : str
        Unique resolver identifier (e.g., 'apollo_vaults', 'native')
    description : str
        Short human-readable description of the protocol

    Methods
    -------
    resolve(context)
        Compute the holdings this protocol contributes to the snapshot

    """

    name: str
    description: str

    def resolve(self, context: SnapshotContext) -> list[Holding]:
        """
        Compute holdings for this protocol.

        Parameters
        ----------
        context : SnapshotContext
            Chain collaborators pinned to the snapshot height

        Returns
        -------
        list[Holding]
            Holdings found; empty when the protocol has no holders

        """
        ...


class ResolverRegistry:
    """
    Registry for source resolvers with auto-registration.

    Resolvers register themselves using the @ResolverRegistry.register
    decorator. The orchestrator builds the enabled resolvers from here.

    """

    _resolvers: dict[str, type] = {}

    @classmethod
    def register(cls, resolver_class: type) -> type:
        """
        Decorator to register a source resolver.

        Parameters
        ----------
        resolver_class : type
            Resolver class to register

        Returns
        -------
        type
            The resolver class (for decorator chaining)

        Examples
        --------
        >>> @ResolverRegistry.register
        ... class NativeResolver(BaseSourceResolver):
        ...     name = "native"

        """
        if not getattr(resolver_class, "name", ""):
            msg = f"Resolver {resolver_class.__name__} must define 'name' attribute"
            raise ValueError(msg)

        cls._resolvers[resolver_class.name] = resolver_class
        return resolver_class

    @classmethod
    def get_resolver(cls, name: str) -> type | None:
        """
        Get resolver class by name.

        Parameters
        ----------
        name : str
            Resolver identifier

        Returns
        -------
        type | None
            Resolver class or None if not found

        """
        return cls._resolvers.get(name)

    @classmethod
    def get_all_resolvers(cls) -> list[type]:
        return list(cls._resolvers.values())

    @classmethod
    def create(cls, names: list[str], config: Any) -> list[Any]:
        """
        Instantiate resolvers by name.

        Parameters
        ----------
        names : list[str]
            Resolver identifiers; empty means every registered resolver that
            has configuration
        config : SnapshotConfig
            Snapshot configuration passed to each resolver

        Returns
        -------
        list
            Resolver instances in the requested order

        Raises
        ------
        KeyError
            If a requested resolver is not registered

        """
        if not names:
            return [
                resolver_class(config)
                for resolver_class in cls._resolvers.values()
                if resolver_class.is_configured(config)
            ]

        resolvers = []
        for name in names:
            resolver_class = cls._resolvers.get(name)
            if resolver_class is None:
                msg = f"Unknown resolver '{name}'. Registered: {', '.join(sorted(cls._resolvers))}"
                raise KeyError(msg)
            resolvers.append(resolver_class(config))
        return resolvers

    @classmethod
    def clear(cls) -> None:
        """Clear all registered resolvers (useful for testing)."""
        cls._resolvers.clear()

    @classmethod
    def list_resolvers(cls) -> list[str]:
        return list(cls._resolvers.keys())
