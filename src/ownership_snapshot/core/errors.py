"""Error taxonomy for snapshot exports.

Every error here is fatal for the run unless a resolver explicitly skips it
while enumerating a list of optional references.
"""


class SnapshotError(Exception):
    """Base class for all snapshot export errors."""


class MalformedKeyError(SnapshotError):
    """Exception raised when a store key is shorter than its expected layout."""


class DecodeError(SnapshotError):
    """Exception raised when a stored value cannot be parsed into a record shape."""


class MissingQuantityError(DecodeError):
    """Exception raised when a required numeric field is null or absent."""


class AssetNotInPoolError(SnapshotError):
    """Exception raised when the target asset is not one of a pool's two assets."""


class QueryFailedError(SnapshotError):
    """Exception raised when a contract query or node request fails."""


class AddressNotFoundError(SnapshotError):
    """Exception raised when an address cannot be parsed from its bech32 or base64 form."""


class ScanOrderError(SnapshotError):
    """Exception raised when a store view yields keys out of order or twice."""


class MissingRecordError(SnapshotError):
    """Exception raised when a singleton record has no entry in the store."""


class DuplicateRecordError(SnapshotError):
    """Exception raised when a singleton record has more than one entry in the store."""


class ResolverError(SnapshotError):
    """
    Fatal failure of one source resolver.

    Parameters
    ----------
    resolver : str
        Name of the resolver that failed
    message : str
        Description of the failure
    key : bytes | None
        Offending store key, if the failure is tied to one

    """

    def __init__(self, resolver: str, message: str, key: bytes | None = None) -> None:
        self.resolver = resolver
        self.key = key
        detail = f"[{resolver}] {message}"
        if key is not None:
            detail = f"{detail} (key={key.hex()})"
        super().__init__(detail)
