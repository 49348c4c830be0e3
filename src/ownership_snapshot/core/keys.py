"""Composite store key encoding and decoding.

Contract storage keys follow the CosmWasm `Map` layout: every namespace and
every non-terminal key segment is written as a 2-byte big-endian length
followed by its bytes, and the terminal segment is written bare.
"""

from ownership_snapshot.core.errors import AddressNotFoundError, MalformedKeyError
from ownership_snapshot.core.models import ADDRESS_WIDTH, DEFAULT_HRP, Address

LENGTH_HEADER = 2


def encode_length(segment: bytes) -> bytes:
    if len(segment) > 0xFFFF:
        msg = f"Key segment too long: {len(segment)} bytes"
        raise ValueError(msg)
    return len(segment).to_bytes(LENGTH_HEADER, "big")


def namespace_prefix(*segments: str | bytes) -> bytes:
    """
    Build the storage prefix for a map namespace and optional key segments.

    Parameters
    ----------
    *segments : str | bytes
        Namespace followed by any fixed key segments, all length-prefixed

    Returns
    -------
    bytes
        Raw prefix bytes

    Examples
    --------
    >>> namespace_prefix("user")
    b'\\x00\\x04user'

    """
    prefix = b""
    for segment in segments:
        raw = segment.encode() if isinstance(segment, str) else bytes(segment)
        prefix += encode_length(raw) + raw
    return prefix


def _split_segment(key: bytes, prefix_len: int, width: int) -> tuple[bytes, bytes]:
    end = prefix_len + LENGTH_HEADER + width
    if len(key) < end:
        msg = f"Key of {len(key)} bytes is shorter than prefix {prefix_len} + header {LENGTH_HEADER} + address {width}"
        raise MalformedKeyError(msg)
    return key[prefix_len + LENGTH_HEADER : end], key[end:]


def decode_holder_key(
    key: bytes,
    prefix_len: int = 0,
    address_width: int = ADDRESS_WIDTH,
    hrp: str = DEFAULT_HRP,
) -> tuple[Address, bytes]:
    """
    Decode a length-prefixed raw address segment and the bytes that follow it.

    Parameters
    ----------
    key : bytes
        Full store key
    prefix_len : int
        Length of the namespace prefix in front of the address segment
    address_width : int
        Width of the raw address
    hrp : str
        Bech32 prefix for the decoded address

    Returns
    -------
    tuple[Address, bytes]
        Holder address and the opaque remainder (e.g. an ASCII strategy id)

    Raises
    ------
    MalformedKeyError
        If the key is shorter than `prefix_len + 2 + address_width`

    """
    raw, remainder = _split_segment(key, prefix_len, address_width)
    return Address.from_bytes(raw, hrp), remainder


def decode_text_holder_key(
    key: bytes,
    prefix_len: int = 0,
    width: int | None = None,
) -> tuple[Address, bytes]:
    """
    Decode a length-prefixed bech32 address segment and the bytes that follow it.

    Parameters
    ----------
    key : bytes
        Full store key
    prefix_len : int
        Length of the namespace prefix in front of the address segment
    width : int | None
        Expected text width; read from the segment's length header when None

    Raises
    ------
    MalformedKeyError
        If the key is too short or the header disagrees with `width`
    AddressNotFoundError
        If the segment is not a valid bech32 address

    """
    if len(key) < prefix_len + LENGTH_HEADER:
        msg = f"Key of {len(key)} bytes has no length header after prefix {prefix_len}"
        raise MalformedKeyError(msg)
    declared = int.from_bytes(key[prefix_len : prefix_len + LENGTH_HEADER], "big")
    if width is not None and declared != width:
        msg = f"Address segment declares {declared} bytes, expected {width}"
        raise MalformedKeyError(msg)
    raw, remainder = _split_segment(key, prefix_len, declared)
    return _text_address(raw), remainder


def decode_trailing_address(
    key: bytes,
    prefix_len: int = 0,
    *,
    textual: bool = False,
    hrp: str = DEFAULT_HRP,
) -> Address:
    """
    Decode a key whose whole remainder after the prefix is the holder address.

    Parameters
    ----------
    key : bytes
        Full store key
    prefix_len : int
        Length of the namespace prefix
    textual : bool
        Whether the address is stored as bech32 text rather than raw bytes
    hrp : str
        Bech32 prefix for raw addresses

    Raises
    ------
    MalformedKeyError
        If nothing follows the prefix

    """
    raw = key[prefix_len:]
    if not raw:
        msg = f"Key of {len(key)} bytes has no address after prefix {prefix_len}"
        raise MalformedKeyError(msg)
    if textual:
        return _text_address(raw)
    return Address.from_bytes(raw, hrp)


def _text_address(raw: bytes) -> Address:
    try:
        text = raw.decode("ascii")
    except UnicodeDecodeError as e:
        msg = f"Address segment is not ASCII: {raw.hex()}"
        raise AddressNotFoundError(msg) from e
    return Address.from_bech32(text)
